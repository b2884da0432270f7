"""Access to the application configuration."""

import os
from typing import Any, Mapping, Optional

from flask import current_app, has_app_context

from . import config


def get_application_config(app: Optional[Any] = None) -> Mapping[str, Any]:
    """
    Get a configuration from the current app, or fall back to env.

    Parameters
    ----------
    app : :class:`flask.Flask`

    Returns
    -------
    dict-like
        This is either the current Flask application configuration, or a
        mapping of the package defaults overlaid by ``os.environ``.

    """
    if app is not None and hasattr(app, 'config'):
        return app.config
    if has_app_context():
        return current_app.config
    return {**config.DEFAULTS, **os.environ}
