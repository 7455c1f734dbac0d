"""
Installation setup for mtgjson_sql
"""
import configparser
import pathlib

import setuptools

# Establish project directory
project_root: pathlib.Path = pathlib.Path(__file__).resolve().parent

# Read config details to determine version-ing
config_file = project_root.joinpath("mtgjson_sql/resources/mtgjson_sql.properties")
config = configparser.ConfigParser()
if config_file.is_file():
    config.read(str(config_file))

readme_file = project_root.joinpath("README.md")

setuptools.setup(
    name="mtgjson_sql",
    version=config.get("MTGJSON_SQL", "version", fallback="1.0.0+fallback"),
    url="https://mtgjson.com/",
    description="Query MTGJSON data through an embedded DuckDB database",
    long_description=readme_file.open(encoding="utf-8").read()
    if readme_file.is_file()
    else "",
    long_description_content_type="text/markdown",
    license="MIT",
    classifiers=[
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python",
        "Topic :: Database",
    ],
    keywords=[
        "Card Games",
        "Database",
        "DuckDB",
        "MTG",
        "MTGJSON",
        "SQL",
        "Magic: The Gathering",
    ],
    python_requires=">=3.10",
    include_package_data=True,
    package_data={"mtgjson_sql": ["resources/*.properties"]},
    packages=setuptools.find_packages(include=["mtgjson_sql", "mtgjson_sql.*"]),
    install_requires=project_root.joinpath("requirements.txt")
    .open(encoding="utf-8")
    .readlines()
    if project_root.joinpath("requirements.txt").is_file()
    else [],  # Use the requirements file, if able
    extras_require={
        "test": ["pytest", "pytest-mock", "responses", "flake8"],
    },
    entry_points={
        "console_scripts": ["mtgjson-sql=mtgjson_sql.__main__:main"],
    },
)
