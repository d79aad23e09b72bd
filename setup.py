import os.path
import re

from setuptools import setup

setup_dir = os.path.split(os.path.abspath(__file__))[0]
with open(os.path.join(setup_dir, 'README.rst')) as f:
	DOCUMENTATION = f.read()

# Not importing the package itself, since its dependencies may not be installed yet.
with open(os.path.join(setup_dir, 'cbrng', '__init__.py')) as f:
	version_match = re.search(r'^VERSION = \(([\d, ]+)\)', f.read(), re.MULTILINE)
VERSION = '.'.join(part.strip() for part in version_match.group(1).split(','))

dependencies = ['numpy>=1.20']

setup(
	name='cbrng',
	packages=['cbrng'],
	provides=['cbrng'],
	install_requires=dependencies,
	extras_require={'tests': ['pytest', 'scipy']},
	python_requires='>=3.9',
	version=VERSION,
	author='cbrng contributors',
	description='Counter-based random number generators (Philox) for NumPy',
	long_description=DOCUMENTATION,
	long_description_content_type='text/x-rst',
	classifiers=[
		'Development Status :: 4 - Beta',
		'Intended Audience :: Developers',
		'Intended Audience :: Science/Research',
		'License :: OSI Approved :: MIT License',
		'Operating System :: OS Independent',
		'Programming Language :: Python :: 3',
		'Topic :: Scientific/Engineering :: Mathematics'
	]
)
