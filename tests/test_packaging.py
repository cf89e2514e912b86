import re
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class TestPackaging:
    def test_declared_readme_is_a_real_readme(self):
        pyproject = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
        match = re.search(r'^readme\s*=\s*"([^"]+)"', pyproject, re.MULTILINE)
        if match is None:
            return
        readme = match.group(1)
        assert Path(readme).name.lower().startswith("readme")
        assert (PROJECT_ROOT / readme).is_file()
