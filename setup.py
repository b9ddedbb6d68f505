#!/usr/bin/env python3
"""
hmd_orient Setup Script
"""

from setuptools import setup, find_packages

setup(
    name='hmd_orient',
    version='1.0.0',
    description='Real-time device orientation filtering for head-mounted displays',
    author='FurSys AI Team',
    packages=find_packages(include=['hmd_orient', 'hmd_orient.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.20.0',
        'scipy>=1.7.0',
        'pyyaml>=5.4.0',
        'pandas>=1.3.0',
    ],
    extras_require={
        'dev': [
            'pytest>=6.0.0',
            'pytest-cov>=2.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'hmd_orient=hmd_orient.main:main',
        ],
    },
)
