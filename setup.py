"""Install the CMS authentication and session core."""

from setuptools import setup, find_packages

setup(
    name='cms-auth',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    py_modules=['generate_token', 'create_user'],
    install_requires=[
        "bcrypt",
        "click",
        "flask",
        "flask-sqlalchemy",
        "pyjwt",
        "python-dateutil",
        "python-json-logger>=3.1",
        "pytz",
        "redis",
        "retry",
        "sqlalchemy",
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False
)
