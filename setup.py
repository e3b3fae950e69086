# setup.py
from setuptools import setup, find_packages

setup(
    name="chatedit",
    version="0.1.0",
    description="A CLI tool that applies whole-file edits proposed by an LLM in a chat to a project tree.",
    author="Your Name or Team",
    author_email="your_email@example.com",
    packages=find_packages(include=['chatedit', 'chatedit.*']),
    include_package_data=True,
    package_data={
        'chatedit': ['templates/*.j2'],
    },
    install_requires=[
        "click>=8.0",
        "pyyaml",
        "jinja2",
        "rich",
        "openai>=1.0",
    ],
    extras_require={
        "test": ["pytest", "httpx"],
    },
    entry_points={
        'console_scripts': [
            'chatedit = chatedit.cli:cli',
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
