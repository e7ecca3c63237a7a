"""
Установочный скрипт для движка пакетной обработки.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Чтение README
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

setup(
    name="concurrent-batch-engine",
    version="1.0.0",
    author="Worker Pool Team",
    author_email="team@workerpool.example.com",
    description="Асинхронный пул воркеров для пакетной обработки с приоритетной очередью, ограничением частоты и ретраями с backoff",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/example/concurrent-batch-engine",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: AsyncIO",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Distributed Computing",
    ],
    python_requires=">=3.11",
    install_requires=[
        "psutil>=5.9.0",
        "pyyaml>=6.0",
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-mock>=3.10.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
            "mypy>=1.0.0",
            "isort>=5.12.0",
        ],
    },
    keywords="asyncio worker pool batch processing priority queue rate limit retry backoff",
    project_urls={
        "Bug Reports": "https://github.com/example/concurrent-batch-engine/issues",
        "Source": "https://github.com/example/concurrent-batch-engine",
    },
)
