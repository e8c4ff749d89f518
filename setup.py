from setuptools import setup, find_packages

setup(
    name="heartlen",
    version="0.1.0",
    description="Camera PPG pipeline: heartbeat valleys, heart rate, HRV and signal quality",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "joblib>=1.3",
    ],
    extras_require={
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "heartlen-replay=main:main",
        ]
    },
)
