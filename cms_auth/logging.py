"""
Structured logging for the CMS auth core.

Use this module in place of the standard :mod:`logging` module:

.. code-block:: python

   from cms_auth import logging
   logger = logging.getLogger(__name__)

Records are emitted as JSON objects on stderr. Nothing in this package logs
passwords, session tokens, signed tokens or secrets; keep it that way.
"""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from .globals import get_application_config

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def _make_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    formatter = JsonFormatter(
        FORMAT,
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
    )
    handler.setFormatter(formatter)
    return handler


def getLogger(name: str) -> logging.Logger:
    """
    Wrapper for :func:`logging.getLogger` that applies configuration.

    Parameters
    ----------
    name : str

    Returns
    -------
    :class:`logging.Logger`

    """
    logger = logging.getLogger(name)
    config = get_application_config()
    level = str(config.get('LOG_LEVEL', 'INFO')).upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    if not any(getattr(h, '_cms_auth', False) for h in logger.handlers):
        handler = _make_handler()
        handler._cms_auth = True   # type: ignore
        logger.addHandler(handler)
    logger.propagate = False
    return logger
