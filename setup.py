from setuptools import find_packages, setup

setup(
    name="livescribe",
    description="Real-time transcript segmentation with asynchronous LLM translation, language detection and question answering",
    long_description=open("README.md", "r", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    author="Teron",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "langchain-core",
        "langchain-openai",
    ],
    extras_require={
        "test": ["pytest"],
    },
    package_data={
        "livescribe": ["rules/*.json"],
    },
    python_requires=">=3.9",
)
