from setuptools import setup


setup(
    name="convo-ingest",
    version="0.1.0",
    description="Heuristic schema inference and row normalisation for messy customer-conversation spreadsheets",
    packages=["convo_ingest"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "all": ["xlrd"],
    },
)
