import setuptools
import os

version = "0.1.0"

with open(os.path.join(os.path.dirname(__file__), "README.md")) as f:
    LongDescription = f.read()

setuptools.setup(
    name="stickpilot",
    zip_safe=True,
    version=version,
    description="Virtual stick and mission control core for ground stations.",
    long_description_content_type="text/markdown",
    long_description=LongDescription,
    install_requires=[
        "pymavlink>=2.2.20",
        "monotonic>=1.3",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Science/Research",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
    ],
    packages=setuptools.find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
)
