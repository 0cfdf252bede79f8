from setuptools import setup, find_packages

setup(
    name="relay-bench",
    version="0.1.0",
    description="CRDT replication latency benchmarks over a Signal group relay",
    author="adamfilli",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
        "httpx",
        "pycrdt",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["relaybench=relaybench.cli:main"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
