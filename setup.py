from setuptools import setup


setup(
    name="cardsheet",
    version="0.1.0",
    description="Header-row detection and table normalization for marketplace CSV and Excel templates",
    packages=["cardsheet"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
    },
    entry_points={
        "console_scripts": [
            "cardsheet=cardsheet.cli:main",
        ]
    },
)
