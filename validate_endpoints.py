import re
from pathlib import Path

from iiitm_portal.app import create_app

URL_FOR = re.compile(r"url_for\(\s*['\"]([\w.]+)['\"]")


def find_missing(app, tmpl_root: Path) -> dict[str, set[str]]:
    """Endpoints referenced by ``url_for`` in templates that the app does not register."""
    refs: dict[str, set[str]] = {}
    for p in tmpl_root.rglob("*.html"):
        txt = p.read_text(encoding="utf-8", errors="ignore")
        for m in URL_FOR.finditer(txt):
            refs.setdefault(m.group(1), set()).add(str(p.relative_to(tmpl_root)))

    endpoints = {r.endpoint for r in app.url_map.iter_rules()}
    return {ep: files for ep, files in refs.items() if ep not in endpoints}


def main() -> int:
    app = create_app()
    tmpl_root = Path(__file__).resolve().parent / "templates"
    missing = find_missing(app, tmpl_root)

    print(f"Missing endpoints (referenced but not registered): {len(missing)}")
    for ep in sorted(missing):
        print(f"- {ep} <= {', '.join(sorted(missing[ep]))}")

    return 0 if not missing else 1


if __name__ == "__main__":
    raise SystemExit(main())
