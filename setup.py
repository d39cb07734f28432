from setuptools import setup, find_packages
import kaiwa

setup(
  name              = "kaiwa",
  url               = "https://github.com/obfusk/kaiwa",
  description       = "incremental execution core for a compiled-language REPL",
  version           = kaiwa.__version__,
  author            = "Felix C. Stegerman",
  author_email      = "flx@obfusk.net",
  license           = "GPLv3+",
  classifiers       = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3.6",
    "Programming Language :: Python :: Implementation :: CPython",
    "Topic :: Software Development :: Interpreters",
    "Topic :: Software Development :: Libraries",
  ],
  keywords          = "repl interpreter incremental compilation",
  packages          = find_packages(include = ["kaiwa"]),
  entry_points      = { "console_scripts": ["kaiwa=kaiwa.__main__:main_"] },
  python_requires   = ">=3.6",
  install_requires  = ["pyparsing", "regex"],
  extras_require    = { "test": ["coverage", "pytest"] },
)
