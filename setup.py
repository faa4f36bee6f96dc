from setuptools import find_packages, setup

setup(
    name="xtalcore",
    version="0.1.0",
    description="Periodic crystal geometry and symmetry: lattices, space groups, "
    "symmetry expansion, molecules, supercells and structure matching",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=["numpy", "scipy"],
    extras_require={"test": ["pytest"]},
)
