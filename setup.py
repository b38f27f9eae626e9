from setuptools import find_packages, setup

setup(
    name="qcdemux",
    version="0.0.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    entry_points={"console_scripts": ["qcdemux = qcdemux.main:app"]},
    test_suite="tests",
    python_requires=">=3.10",
    install_requires=["typer", "rich", "typing_extensions"],
    extras_require={"test": ["pytest"]},
)
