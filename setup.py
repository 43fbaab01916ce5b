from setuptools import setup, find_packages

setup(
    name="assessly-backend",
    version="0.1.0",
    packages=find_packages(include=["assessly", "assessly.*"]),
    package_data={
        "assessly": [
            "alembic/*.py",
            "alembic/*.mako",
            "alembic/versions/*.py",
        ],
    },
    install_requires=[
        "fastapi>=0.93.0,<0.100.0",
        "uvicorn>=0.15.0",
        "pydantic>=1.8.0,<2.0.0",
        "sqlalchemy[asyncio]>=1.4.0,<2.0.0",
        "aiosqlite>=0.17.0",
        "asyncpg>=0.25.0",
        "alembic>=1.7.0",
        "python-dotenv>=0.19.0",
        "PyJWT>=2.4.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.20,<0.24",
            "httpx>=0.23,<0.28",
        ],
    },
    python_requires=">=3.8",
)
