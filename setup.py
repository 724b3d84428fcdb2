from setuptools import find_packages, setup

setup(
    name="vault-provisioner",
    version="0.1.0",
    packages=find_packages(exclude=["vault_provisioner_tests", "vault_provisioner_tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "hvac>=2.0",
        "pydantic>=2.0",
        "python-dotenv",
        "requests",
        "tenacity>=8.2",
    ],
    extras_require={"dev": ["pytest"]},
    entry_points={
        "console_scripts": [
            "vault-provisioner = vault_provisioner.cli:main",
        ],
    },
)
