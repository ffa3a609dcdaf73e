from setuptools import setup, find_packages


setup(
    name="mxptool",
    version="0.1",
    packages=find_packages(),
    description="Reader and writer for MXP extension archives (block-deflated payloads behind an MXI manifest).",
    author="vercingetorx",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "mxptool=mxptool.cli:main",
        ]
    },
)
