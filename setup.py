from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="unitgrid",
    version="0.0.1",
    author="Peter Cotton",
    author_email="",
    description="Unit-aware spreadsheet calculation engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/petercotton/unitgrid",
    packages=find_packages(exclude=["tests", "tests.*", "scripts", "scripts.*"]),
    include_package_data=True,
    package_data={
        'unitgrid.units': ['unitconfig.yaml', 'data/*.parquet', 'data/*.csv'],
        'unitgrid.sheet': ['sheetconfig.yaml'],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "pandas>=1.3.0,<3",
        "rapidfuzz>=2.0.0",
        "pyarrow>=10.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0.0"],
    },
)
