from setuptools import setup, find_packages

setup(
    name="workflow-interpreter",
    version="0.1.0",
    description="Embeddable interpreter for declarative, resumable workflows",
    author="MCP Team",
    packages=find_packages(include=["workflow_interpreter*", "config*"]),
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "openai>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.0.0",
        ],
    },
    python_requires=">=3.8",
)
