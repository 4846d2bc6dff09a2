"""Setup script for mgtransfer."""

import re
from pathlib import Path

from setuptools import setup, find_packages

# Single source of the version: src/mgtransfer/_version.py
version_file = Path(__file__).parent / "src" / "mgtransfer" / "_version.py"
version = re.search(r'__version__ = "(.+?)"', version_file.read_text()).group(1)

setup(
    name="mgtransfer",
    version=version,
    description="Geometric multigrid dof transfer on locally refined meshes with renumbering-invariance checks",

    packages=find_packages(where="src"),
    package_dir={"": "src"},

    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21.0",
        "scipy>=1.9.0",
        "matplotlib>=3.5.0",
        "pyyaml>=6.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "isort>=5.12.0",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],

    keywords=[
        "multigrid", "finite-elements", "adaptive-refinement", "prolongation",
        "dof-renumbering", "scientific-computing", "numerical-methods"
    ],

    entry_points={
        "console_scripts": [
            "mgtransfer-check=mgtransfer.cli:main",
        ],
    },

    package_data={
        "mgtransfer": ["config/*.yaml"],
    },

    include_package_data=True,
    zip_safe=False,
)
