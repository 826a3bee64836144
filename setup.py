from setuptools import setup, find_packages

setup(
    name="image-tagger",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "SQLAlchemy>=1.4.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "image-tagger=image_tagger.cli:main",
        ],
    },
    python_requires=">=3.10",
)
