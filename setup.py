from setuptools import find_packages, setup

with open("README.md", "r") as readme:
    long_description = readme.read()

setup(
    name="pocket_python_api",
    version="1.0.0",
    description="Typed python client for the Pocket v3 retrieve API.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
    ],
    license="GPLv3",
    keywords=[
        "pocket",
        "getpocket",
        "bookmarks",
        "read-it-later",
        "python",
        "api",
        "pydantic",
    ],
    python_requires=">=3.9",
    install_requires=[
        "requests >= 2.32.3",
        "loguru >= 0.7.3",
        "pydantic >= 2.0",  # For response validation and the typed models in datatypes.py
        "click >= 8.0",  # For the CLI
        "beartype >= 0.20.2",  # Runtime checking of the enumerated parameters
    ],
    extras_require={
        "dev": [
            "pytest >= 8.3.4",
            "build >= 1.2.2.post1",
            "twine >= 6.1.0",
            "bumpver >= 2024.1130",
        ],
        "examples": [
            "fire >= 0.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pocket=pocket_python_api.__main__:cli",
        ],
    },
)
