from setuptools import setup, find_packages
import re

# Read version from hourscalc/__init__.py
with open('hourscalc/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='hours-calc',
    version=version,
    packages=find_packages(include=['hourscalc', 'hourscalc.*']),
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.6',
        'rich>=13.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'hours-calc=hourscalc.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Hours registration, deduction and payment distribution calculator.',
    python_requires='>=3.10',
)
