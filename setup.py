from setuptools import setup, find_packages

setup(
    name="returns-forecast",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["models", "errors", "calculate_forecast"],
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "statsmodels",
        "scikit-learn",
        "yfinance",
        "matplotlib",
        "seaborn",
        "tqdm",
        "psutil",
        "python-dotenv",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "returns-forecast=calculate_forecast:main",
        ],
    },
    python_requires=">=3.8",
)
