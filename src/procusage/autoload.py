"""Importing this module logs the usage of the running interpreter at exit.

Add ``import procusage.autoload`` to sitecustomize.py, or a line with the same
import to a .pth file in site-packages, to measure every Python program.
"""

from procusage.hook import install

install()
