import re
import subprocess
import sys
import xml.etree.ElementTree as ET

PACKAGE = 'pendant'
TESTS_HEADING = '## Tests'

def read_coverage(coverage_xml_path: str = 'coverage.xml') -> tuple[float, float, list[tuple[str, float, float]]]:
    """
    Read overall and per-module line and branch rates from a pytest-cov XML report.

    Args:
        coverage_xml_path: Path to coverage.xml

    Returns:
        (line rate %, branch rate %, [(module, line rate %, branch rate %)])
    """
    root = ET.parse(coverage_xml_path).getroot()
    modules = []
    for package in root.findall('.//package'):
        name = package.get('name', '')
        if not name:
            continue
        module = name.replace(f'src/{PACKAGE}', PACKAGE).replace(f'{PACKAGE}/', f'{PACKAGE}.').replace('/', '.')
        modules.append((module, float(package.get('line-rate', 0)) * 100, float(package.get('branch-rate', 0)) * 100))
    return float(root.get('line-rate', 0)) * 100, float(root.get('branch-rate', 0)) * 100, modules

def badge_color(coverage: float) -> str:
    for threshold, color in ((80, 'brightgreen'), (60, 'green'), (40, 'yellow'), (20, 'orange')):
        if coverage >= threshold:
            return color
    return 'red'

def render_badge(line_rate: float) -> str:
    return f"![Coverage](https://img.shields.io/badge/coverage-{line_rate:.1f}%25-{badge_color(line_rate)}.svg)"

def render_tests_section(line_rate: float, branch_rate: float, modules: list[tuple[str, float, float]]) -> str:
    rows = [
        f"{TESTS_HEADING}\n",
        f"Run `pytest --cov=src --cov-report=xml` and `python scripts/update_readme_coverage.py` to refresh this section.\n",
        f"**Overall Coverage:** {line_rate:.1f}% (Lines) | {branch_rate:.1f}% (Branches)\n",
        "| Module | Lines | Branches |",
        "|--------|-------|----------|",
    ]
    for module, module_lines, module_branches in sorted(modules):
        rows.append(f"| `{module}` | {module_lines:.1f}% | {module_branches:.1f}% |")
    return '\n'.join(rows) + '\n'

def update_readme(readme_path: str = 'README.md', coverage_xml_path: str = 'coverage.xml') -> bool:
    """
    Rewrite the coverage badge and the Tests section of the README.

    Args:
        readme_path: README to update
        coverage_xml_path: pytest-cov XML report

    Returns:
        True if the README changed
    """
    with open(readme_path, 'r') as f:
        original = f.read()

    line_rate, branch_rate, modules = read_coverage(coverage_xml_path)
    badge = render_badge(line_rate)
    section = render_tests_section(line_rate, branch_rate, modules)

    content = original
    if re.search(r'!\[Coverage\][^\n]*', content):
        content = re.sub(r'!\[Coverage\][^\n]*', badge, content)
    else:
        content = re.sub(r'^(# .+\n\n)', lambda m: m.group(1) + badge + '\n\n', content, count=1, flags=re.MULTILINE)

    if re.search(rf'^{TESTS_HEADING}\b', content, re.MULTILINE):
        content = re.sub(rf'(^{TESTS_HEADING}\b.*?)(?=^## |\Z)', lambda m: section, content, flags=re.MULTILINE | re.DOTALL)
    else:
        content = content.rstrip() + '\n\n' + section

    content = content.rstrip() + '\n'
    if content == original.rstrip() + '\n':
        return False

    with open(readme_path, 'w') as f:
        f.write(content)
    subprocess.run(['git', 'add', readme_path], check=False)
    return True

if __name__ == '__main__':
    readme_path = sys.argv[1] if len(sys.argv) > 1 else 'README.md'
    coverage_xml = sys.argv[2] if len(sys.argv) > 2 else 'coverage.xml'
    update_readme(readme_path, coverage_xml)
