from setuptools import setup, find_packages

setup(
    name="dsw",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    package_data={"dsw": ["stubs/*.md"]},
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "scipy",
        "statsmodels",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest", "tqdm"],
    },
    description="Data Simulation Workshops: exercises and helpers for simulating factorial and mixed-effects data",
)
