"""
Module installer.

This package loads a module catalog with its binary archive partitions,
resolves component dependencies and installs or removes components in a
project tree.
"""
