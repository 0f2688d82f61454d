import sys
from pathlib import Path

from setuptools import setup, find_packages

if sys.version_info[0:2] < (3, 8):
    raise RuntimeError("This package requires Python 3.8+.")

setup(
    name="pidctl",
    version="0.1.0",
    packages=find_packages(include=["pidctl", "pidctl.*"]),
    package_data={"pidctl": ["_cfg.yaml"]},
    license="MIT",
    description="A sampled PID controller with bumpless transfer and anti-windup",
    long_description=Path(__file__).with_name("README.rst").read_text(encoding="utf-8"),
    long_description_content_type="text/x-rst",
    install_requires=["anyio>=3.0", "asyncclick>=8.1", "ruyaml>=0.91", "moat-util", "moat-lib-codec==0.4.7"],
    extras_require={"test": ["pytest", "trio", "numpy"]},
    entry_points={"console_scripts": ["pidctl = pidctl._main:cli"]},
    python_requires=">=3.8",
    classifiers=[
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Framework :: AnyIO",
        "Framework :: Trio",
        "License :: OSI Approved",
    ],
)
