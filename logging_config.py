"""
Logging configuration for lamb
Program output owns stdout, so log records go to stderr or a file
"""

from typing import Optional
import logging
import os
import sys


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVEL_ENV = 'LAMB_LOG_LEVEL'


def resolve_level(level: Optional[str]) -> int:
  """Map a level name to its logging constant, falling back to LAMB_LOG_LEVEL, then WARNING"""
  name = level or os.environ.get(LOG_LEVEL_ENV) or 'WARNING'
  numeric_level = getattr(logging, name.upper(), None)
  if not isinstance(numeric_level, int):
    return logging.WARNING
  return numeric_level


def setup_logging(level: Optional[str] = "WARNING", log_file: Optional[str] = None) -> None:
  """
  Configure logging for the interpreter

  Args:
    level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_file: Optional path to log file. If None, logs go to stderr.
  """
  config = {
      'level': resolve_level(level),
      'format': LOG_FORMAT,
      'force': True,
  }

  if log_file:
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
      os.makedirs(log_dir)
    config['filename'] = log_file
  else:
    config['stream'] = sys.stderr

  logging.basicConfig(**config)
  logging.getLogger(__name__).debug("Logging initialized at %s level",
                                    logging.getLevelName(config['level']))


def get_logger(name: str) -> logging.Logger:
  return logging.getLogger(name)
