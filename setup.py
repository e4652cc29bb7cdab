import sys
import traceback
from setuptools import find_packages, setup

def get_packages():
    """Get package list with debug information."""
    try:
        packages = find_packages(include=["taskboard", "taskboard.*"])
        print(f"Found packages: {packages}")
        return packages
    except Exception as e:
        print(f"Error finding packages: {e}")
        print(f"Traceback:\n{traceback.format_exc()}")
        return []

try:
    print(f"Python version: {sys.version}")

    setup(
        name="taskboard",
        version="0.1.0",
        description="Project and task management service with SQLite storage",
        packages=get_packages(),
        package_dir={"": "."},
        include_package_data=True,
        install_requires=[
            # Core Dependencies
            "pydantic>=2.0",
            "python-dotenv>=0.19.0",
            "pyyaml>=5.4",
            # Utils
            "rich>=10.0.0",
        ],
        extras_require={
            "test": [
                "pytest>=6.0.0",
                "pytest-asyncio>=0.21.0",
            ],
        },
        python_requires=">=3.8",
    )
except Exception as e:
    print(f"Setup failed: {e}")
    print(f"Traceback:\n{traceback.format_exc()}")
    raise
