from setuptools import setup, find_packages

setup(
    name="qualityeval",
    version="1.0.0",
    description="Quality score computation for software projects evaluated against quality standards",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml>=6.0",
        "jsonschema>=4.20.0",
        "click>=8.1.7",
        "tqdm>=4.66.1",
        "pandas>=2.1.4",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "qualityeval=qualityeval.cli:main",
        ],
    },
    python_requires=">=3.8",
)
