import os
from setuptools import setup

def packages(directory, root='python'):
    return [
        os.path.relpath(_[0], root).replace(os.sep, '.')
        for _ in os.walk(os.path.join(root, directory))
        if os.path.isfile(os.path.join(_[0], '__init__.py'))
    ]

setup(
    name = "tc-gen",
    version = "1.0.0",
    author = "VyOS maintainers and contributors",
    author_email = "maintainers@vyos.net",
    description = ("Traffic shaping and policing with HTB and fq_codel."),
    license = "LGPLv2+",
    keywords = "tc qos htb fq_codel",
    url = "http://www.vyos.io",
    package_dir = {'': 'python'},
    packages = packages('tcgen'),
    python_requires = ">=3.9",
    install_requires = [
        "jmespath",
        "tabulate",
    ],
    extras_require = {
        "test": ["pytest"],
    },
    long_description="Linux traffic control generator for HTB and fq_codel",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Topic :: System :: Networking",
        "License :: OSI Approved :: GNU Lesser General Public License v2 or later (LGPLv2+)",
    ],
    entry_points={
        "console_scripts": [
            "tc-gen = tcgen.configure:run",
        ],
    },
)
