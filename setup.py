# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="onelua",
    version="1.0.0",
    description="Single-file bundler for Lua programs and their required modules",
    packages=find_namespace_packages(where="src", include=["onelua", "onelua.*"]),
    package_dir={"": "src"},
    package_data={"onelua.core.syntax": ["lua.lark"]},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "lark>=1.1.9",  # LALR parser for Lua sources
    ],
    extras_require={
        "test": [
            "pytest",
            "lupa",  # Runs generated bundles in tests
        ],
    },
    entry_points={
        'console_scripts': [
            'onelua=onelua.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
