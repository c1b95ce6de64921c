"""
Setup script pour KRE8 Bridge.
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="kre8-bridge",
    version="1.0.0",
    author="KRE8 Team",
    description="Relais de commandes et canal de session WebSocket pour le dashboard KRE8-Styler",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Tools",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.100.0",
        "pydantic>=2.0",
        "uvicorn[standard]>=0.23.0",
        "httpx>=0.24.0",
        "websockets>=13.0",
        "aiofiles>=23.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "kre8-bridge=kre8_bridge.__main__:main",
        ],
    },
)
