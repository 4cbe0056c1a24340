from __future__ import annotations

from pathlib import Path

from setuptools import find_packages, setup


def _read_requirements() -> list[str]:
    requirements_path = Path(__file__).with_name("requirements.txt")
    if not requirements_path.exists():
        return []
    return [line.strip() for line in requirements_path.read_text(encoding="utf-8").splitlines() if line.strip() and not line.startswith("#")]


setup(
    name="salesrecon",
    version="0.1.0",
    description="Distributor sales report parsing, merge and channel reconciliation",
    author="Salesrecon",
    python_requires=">=3.11",
    packages=find_packages(where="src", include=["salesrecon", "salesrecon.*"]),
    package_dir={"": "src"},
    install_requires=_read_requirements(),
    extras_require={"test": ["pytest>=7.0"]},
    include_package_data=True,
    package_data={"salesrecon": ["data/*.yaml"]},
    entry_points={
        "console_scripts": [
            "salesrecon-pipeline=salesrecon.pipeline:main",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
