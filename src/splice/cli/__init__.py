"""
CLI support modules: configuration flags and output helpers.
"""

from splice.cli import config, output

__all__ = ['config', 'output']
