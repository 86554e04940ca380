#!/usr/bin/env python3
from __future__ import annotations

import re
import setuptools
import pathlib
import toml

__minver__ = '3.8'
__github__ = 'https://github.com/carindex/carindex/'
__gitraw__ = 'https://raw.githubusercontent.com/carindex/carindex/'
__author__ = 'carindex contributors'
__slogan__ = 'Streaming header and block index extraction for CAR (content-addressable archive) files.'
__topics__ = [
    'Development Status :: 3 - Alpha',
    'Operating System :: OS Independent',
    'Programming Language :: Python :: 3 :: Only',
    'Topic :: System :: Archiving',
    'Topic :: Utilities',
]


def get_version(package: str = 'carindex') -> str:
    init = pathlib.Path(__file__).parent.joinpath(package, '__init__.py')
    with open(init, 'r', encoding='UTF8') as fd:
        match = re.search(R'''^__version__\s*=\s*['"]([^'"]+)['"]''', fd.read(), re.MULTILINE)
    if match is None:
        raise RuntimeError(F'unable to determine version of {package}')
    return match[1]


def get_config():
    def get_setup_readme(filename: str | pathlib.Path | None = None):
        if filename is None:
            filename = pathlib.Path(__file__).parent.joinpath('README.md')
        with open(filename, 'r', encoding='UTF8') as README:
            def complete_link(match):
                link: str = match[1]
                if any(link.lower().endswith(xt) for xt in ('jpg', 'gif', 'png', 'svg')):
                    return F'({__gitraw__}master/{link})'
                else:
                    return F'({__github__}blob/master/{link})'
            readme = README.read()
            return re.sub(R'(?<=\])\((?!\w+://)(.*?)\)', complete_link, readme)

    def get_setup_common() -> dict:
        return dict(
            version=get_version(),
            long_description=get_setup_readme(),
            author=__author__,
            description=__slogan__,
            long_description_content_type='text/markdown',
            url=__github__,
            python_requires=F'>={__minver__}',
            classifiers=__topics__,
        )

    ppcfg: dict[str, dict[str, list[str]]] = toml.load(
        pathlib.Path(__file__).parent.joinpath('pyproject.toml'))
    build_requirements = ppcfg['build-system']['requires']
    requirements = [
        r for r in ppcfg['tool']['carindex']['requires'] if r not in build_requirements]

    config = get_setup_common()
    config.update(
        name='carindex',
        packages=setuptools.find_packages(include=('carindex*',)),
        install_requires=requirements,
        extras_require={'test': ppcfg['tool']['carindex']['test']},
        include_package_data=True,
        entry_points={'console_scripts': ['carindex=carindex.cli:run']},
    )

    return config


if __name__ == '__main__':
    setuptools.setup(**get_config())
