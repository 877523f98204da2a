"""Main settings file for the project.

Settings are split into components and environments with
``django-split-settings``. ``DJANGO_ENV`` selects which environment
file is layered on top of the shared components.
"""

from os import environ

import django_stubs_ext
from split_settings.tools import include, optional

# Runtime support for generic admin and model classes:
django_stubs_ext.monkeypatch()

# Managing environment via `DJANGO_ENV` variable:
environ.setdefault('DJANGO_ENV', 'development')
_ENV = environ['DJANGO_ENV']

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/drive.py',

    # Select the right env:
    'environments/{0}.py'.format(_ENV),

    # Optionally override some settings:
    optional('environments/local.py'),
)

# Include settings:
include(*_base_settings)
