"""
Setup script for IP Sweep.

Usage:
    pip install -e .            # development install
    pip install -e .[test]      # with the test suite dependencies

Installs the ``ipsweep`` console command.
"""
from setuptools import setup

VERSION = '1.0.0'

PACKAGES = [
    # Our packages
    'config',
    'storage',
    'sweep',
]

INSTALL_REQUIRES = [
    'psutil>=5.9',
]

EXTRAS_REQUIRE = {
    'test': [
        'pytest>=7.0',
    ],
}

setup(
    name='ipsweep',
    version=VERSION,
    description='Resumable bounded-concurrency ICMP sweep of the IPv4 address space',
    python_requires='>=3.8',
    packages=PACKAGES,
    py_modules=['ipsweep'],
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    entry_points={
        'console_scripts': [
            'ipsweep=ipsweep:main',
        ],
    },
)
