from setuptools import setup, find_packages


setup(
    name="minitar",
    version="0.1",
    packages=find_packages(include=["minitar", "minitar.*"]),
    description="A small USTAR archiver for regular files: create, append, update, list and extract.",
    author="minitar contributors",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "minitar=minitar.cli:main",
        ]
    },
)
