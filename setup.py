from setuptools import setup


setup(
    name="delivery-recon",
    version="0.3.0",
    description="Local extraction, reconciliation and aggregation of delivery-order slip spreadsheets",
    packages=["delivery_recon"],
    include_package_data=True,
    install_requires=[
        "pandas",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "all": ["xlrd"],
    },
    entry_points={
        "console_scripts": [
            "delivery-recon=delivery_recon.cli:main",
        ]
    },
)
