from setuptools import setup, find_packages

def parse_requirements(filename):
    with open(filename, 'r') as f:
        return [line.strip() for line in f.readlines() \
                if line.strip() and not line.startswith("#")]

setup(
    name="trellis-ml",
    version="0.2.0",
    packages=find_packages(include=['trellis', 'trellis.*']),
    python_requires=">=3.10",
    install_requires=parse_requirements('requirements.txt'),
    extras_require={"test": ["pytest>=7.4"]},
    entry_points={"console_scripts": ["trellis=trellis.cli_app:app"]},
)
