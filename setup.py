import re
from setuptools import setup


with open("README.md", "r") as fh:
    long_description = fh.read()


with open("nufmt/__init__.py") as fh:
    version = re.search(r'^__version__\s*=\s*["\'](.*)["\']', fh.read(), re.M).group(1)


setup(name='nufmt',
      version=version,
      description='Streaming re-indenter for nu source',
      long_description=long_description,
      long_description_content_type="text/markdown",
      classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3',
        "Operating System :: OS Independent",
      ],
      keywords='nu formatter indentation',
      license='BSD',
      packages=['nufmt'],
      install_requires=[
          'parsimonious>=0.10.0',
      ],
      extras_require={
          "test": ['hypothesis>=6.0'],
      },
      entry_points={
          "console_scripts": ['nufmt = nufmt.cli:main']
      },
)
