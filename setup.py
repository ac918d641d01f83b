from setuptools import setup, find_packages

setup(
    name="triageguy",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "pydantic>=2",
        "pyyaml",
        "rich",
        "pygdbmi",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "triageguy-san=triageguy.cli.san:main",
        ],
    },
    description="Severity-classified crash reports from sanitizer and gdb output",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.8",
)
