from setuptools import setup, find_packages
from pathlib import Path

this_directory = Path(__file__).parent

install_requires = [
    "langchain>=1.0.5",
    "langchain-core>=1.0.4",
    "langchain-text-splitters>=1.0.0",
    "pydantic>=2.5",
    "pyyaml>=6.0",
    "numpy>=1.24",
]

setup(
    name="python-ragseek",
    version="0.1.0",
    description="Retrieval strategies for RAG pipelines: vector, keyword, hybrid, HyDE, parent-document, recursive and adaptive retrievers over an embedding cache.",
    author="Nathan Sasto",
    packages=find_packages(include=["ragseek", "ragseek.*"]),
    package_data={
        "ragseek.config": ["*.yaml"],
        "ragseek.prompts": ["*.md"],
    },
    install_requires=install_requires,
    extras_require={
        "dev": [
            "pytest==9.0.0",
            "pytest-asyncio",
            "coverage",
            "black",
            "isort",
            "flake8",
        ],
        "openai": [
            "langchain-openai>=1.0.2",
        ],
    },
    python_requires='>=3.9',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Topic :: Scientific/Engineering :: Information Analysis',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent'
    ],
    long_description=(this_directory / "README.md").read_text(encoding="utf-8"),
    long_description_content_type='text/markdown',
    license='MIT',
)
