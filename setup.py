from setuptools import setup
from setuptools import find_packages

config = {
    'name' : 'mobod',
    'version' : '0.1.0',
    'description' : 'Staged kinematics of trees of mobilized rigid bodies',
    'install_requires' : [
        'numpy',
        'scipy',
        'prettytable',
    ],
    'extras_require' : {
        'test' : ['pytest'],
        'docs' : [
            'sphinx',
            'sphinx-autoapi',
            'sphinx-copybutton',
            'myst-parser',
            'sphinx-book-theme',
        ],
    },
    'python_requires' : '>=3.10',
    'packages' : find_packages(exclude=['tests', 'tests.*']),
}

setup(**config)
