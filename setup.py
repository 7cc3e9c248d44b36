from setuptools import find_packages, setup

setup(
    name="shardcache",
    version="0.1.0",
    packages=find_packages(include=["shardcache", "shardcache.*"]),
    install_requires=[line for line in open("requirements-core.txt").read().splitlines() if line],
    extras_require={"test": ["pytest>=7.0"]},
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "shardcache=shardcache.cli:main",
        ],
    },
)
