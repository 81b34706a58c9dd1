#!/usr/bin/env python
from setuptools import Command, find_packages, setup
from subprocess import call


# Thanks to http://patorjk.com/software/taag/
logo = r"""
           _
  _ __ ___| | __ _  __ _  __ _
 | '__/ _ \ |/ _` |/ _` |/ _` |
 | | |  __/ | (_| | (_| | (_| |
 |_|  \___|_|\__,_|\__, |\__, |
                   |___/ |___/
"""

REQUIREMENTS = [
    "numpy",
    "pandas>=2",
    "pandas-indexing",
    "xarray>=2023.8",
    "attrs",
    "PyYAML",
    "openpyxl",
    "xlsxwriter",
]

EXTRA_REQUIREMENTS = {
    "tests": ["pytest", "coverage", "coveralls", "pytest-cov"],
    "deploy": ["twine", "setuptools", "wheel"],
}


# thank you https://stormpath.com/blog/building-simple-cli-interfaces-in-python
class RunTests(Command):
    """Run all tests."""

    description = "run tests"
    user_options = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass

    def run(self):
        """Run all tests!"""
        errno = call(["py.test", "--cov=relagg", "--cov-report=term-missing"])
        raise SystemExit(errno)


CMDCLASS = {"test": RunTests}


def main():
    print(logo)
    classifiers = [
        "License :: OSI Approved :: Apache Software License",
    ]
    packages = find_packages("src")
    pack_dir = {
        "": "src",
    }
    entry_points = {
        "console_scripts": [
            # list CLIs here
            "relagg=relagg.cli:main",
        ],
    }
    package_data = {
        # add explicit data files here
        # 'relagg': [],
    }
    install_requirements = REQUIREMENTS
    extra_requirements = EXTRA_REQUIREMENTS
    setup_kwargs = {
        "name": "relagg",
        "version": "0.1.0",
        "description": "(Dis-)aggregate labeled arrays with relation matrices "
        "and mappings",
        "cmdclass": CMDCLASS,
        "classifiers": classifiers,
        "license": "Apache License 2.0",
        "packages": packages,
        "package_dir": pack_dir,
        "entry_points": entry_points,
        "package_data": package_data,
        "python_requires": ">=3.10",
        "install_requires": install_requirements,
        "extras_require": extra_requirements,
    }
    setup(**setup_kwargs)


if __name__ == "__main__":
    main()
