"""Setup file for loadopts."""
from setuptools import setup, find_packages

import re
from pathlib import Path

def get_version() -> str:
    """Get version from version.py."""
    version_file = Path(__file__).parent / "loadopts" / "version.py"
    if not version_file.exists():
        return "0.1.0"

    content = version_file.read_text()
    version_match = re.search(r"__version__\s*=\s*['\"]([^'\"]+)['\"]", content)
    if version_match:
        return version_match.group(1)
    return "0.1.0"

version = get_version()

setup(
    name="loadopts",
    version=version,  # Version is read from loadopts/version.py
    description="Options model for load test runs: nullable fields, merging, TLS codecs and env binding",
    python_requires=">=3.8",
    packages=find_packages(include=[
        "loadopts",
        "loadopts.*",
    ]),
    install_requires=[
        "pydantic>=2.0.0,<3.0.0",
        "pydantic-settings>=2.1.0,<3.0.0",
        "cryptography>=41.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
)
