from setuptools import setup, find_packages


setup(
    name="fenc",
    version="0.1",
    packages=find_packages(include=["fenc", "fenc.*"]),
    description="Encrypt, decrypt, or hash files and directory trees in place with a passphrase.",
    author="vercingetorx",
    python_requires=">=3.9",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "fenc=fenc.cli:main",
        ]
    },
)
