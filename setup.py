from setuptools import find_packages, setup

setup(
    name='natinterp2d',
    version='0.1.0',
    description='Natural neighbor (Sibson) interpolation of scattered 2D data',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.8',
    install_requires=['numpy', 'scipy>=1.8'],
    extras_require={'test': ['pytest']},
)
