from setuptools import setup, find_namespace_packages


# read the contents of your README file
from pathlib import Path
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# read the requirements file
requirement_file = this_directory / 'requirements.txt'
with open(requirement_file) as f:
    required = [line for line in f.read().splitlines() if line and not line.startswith('#')]

setup(
    name="ratiocut_pytorch",
    version="0.3.0",
    packages=find_namespace_packages(include=['ratiocut_pytorch', 'ratiocut_pytorch.*']),
    long_description=long_description,
    long_description_content_type='text/markdown',
    python_requires='>=3.9',
    install_requires=required,
    extras_require={'test': ['pytest']},
)
