from setuptools import find_packages, setup

setup(
    name="resilient-http",
    version="1.0.0",
    description="Resilient outbound HTTP client with retries, backoff and interceptors",
    author="BPT Team",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        # HTTP transport dependencies
        "httpx>=0.25.0",
        "aiohttp>=3.9.0",
        # Logging dependencies
        "structlog>=23.2.0",
        "python-json-logger>=2.0.7",
        # Telemetry dependencies
        "opentelemetry-api>=1.28.0",
        "opentelemetry-sdk>=1.28.0",
        "opentelemetry-exporter-otlp-proto-grpc>=1.28.0",
        # Config dependencies
        "pydantic>=2.10.0",
        "pydantic-settings>=2.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "aioresponses>=0.7.6",
            # aioresponses 0.7.9 cannot build responses on aiohttp 3.14+
            "aiohttp<3.14",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
