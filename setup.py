import os
from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

with open("requirements-test.txt") as f:
    test_requirements = f.read().splitlines()


def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()


setup(
    name="fix-provider-aws",
    version="0.1.0",
    description="AWS resource adapters with composite identifiers and status polling",
    license="AGPLv3",
    packages=find_packages(exclude=["test", "test.*"]),
    long_description=read("README.md"),
    long_description_content_type="text/markdown",
    entry_points={
        "console_scripts": [
            "fix-provider-aws = fix_provider_aws.__main__:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={"test": test_requirements},
    tests_require=test_requirements,
    classifiers=[
        # Current project status
        "Development Status :: 3 - Alpha",
        # Audience
        "Intended Audience :: System Administrators",
        "Intended Audience :: Information Technology",
        # License information
        "License :: OSI Approved :: GNU Affero General Public License v3",
        # Supported python versions
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        # Supported OS's
        "Operating System :: POSIX :: Linux",
        "Operating System :: Unix",
        # Extra metadata
        "Environment :: Console",
        "Natural Language :: English",
        "Topic :: System :: Systems Administration",
        "Topic :: Utilities",
    ],
    keywords="aws cloud infrastructure",
)
