from setuptools import setup, find_packages

setup(
    name="bizdash",
    version="1.0.0",
    description="Client library and CLI for the business-management dashboard backend",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "requests>=2.31",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bizdash=bizdash.cli:main",
        ],
    },
    python_requires=">=3.8",
)
