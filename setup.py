import os

from setuptools import find_packages, setup


# List of runtime dependencies required by this built package
install_requires = ['numpy']

# read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md')) as f:
    long_description = f.read()

setup(
    name='dictidx',
    version='0.1.0',
    description='Dictionary index (.idx) reader',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests']),
    license='MIT',
    python_requires='>=3.8',
    install_requires=install_requires,
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['idx2txt=dictidx.tools.idx2txt:main'],
    },
    test_suite='tests',
)
