from setuptools import setup, find_packages

setup(
    name="gamification-engine",
    version="0.1.0",
    packages=find_packages(exclude=["gamification_engine.tests", "gamification_engine.tests.*"]),
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.15.0",
        "pydantic>=2.0.0,<3.0.0",
        "sqlalchemy[asyncio]>=2.0.0,<3.0.0",
        "aiosqlite>=0.19.0",
        "redis>=5.0.1",
        "PyYAML>=6.0",
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "tests": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ],
    },
    python_requires=">=3.10",
)
