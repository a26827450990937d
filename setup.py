from setuptools import setup, find_packages

setup(name='flow_decomposition',
      version='0.1.0',
      description='Flow Decomposition of cross-border network elements',
      author='Flow Decomposition Contributors',
      packages=find_packages(exclude=["tests", "tests.*"]),
      python_requires='>=3.6',
      include_package_data = True,
      package_data={'flow_decomposition': ['network/network_structure.json']},
      install_requires=[
        'numpy',
        'openpyxl',
        'pandas',
        'scipy',
        ],
      extras_require={
        'test': ['pytest'],
        },
     )
