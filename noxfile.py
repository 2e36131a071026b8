import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# psycopg2 ships a C extension; a cached wheel can target the wrong interpreter.
_NATIVE_PACKAGES = ["psycopg2-binary"]

_DOMAIN_SUITES = [
    "tests/ordering/domain/",
    "tests/inventory/domain/",
    "tests/discounts/domain/",
    "tests/payouts/domain/",
]


def _install(session: nox.Session) -> None:
    """Install storefront and its test group into the session virtualenv."""
    session.run("poetry", "install", "--with", "test", "--all-extras", external=True)
    session.run("pip", "install", "--force-reinstall", "--no-cache-dir", *_NATIVE_PACKAGES)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Whole suite on every supported interpreter."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Aggregate tests only; these need no database, broker or provider."""
    _install(session)
    session.run("pytest", *_DOMAIN_SUITES)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_bdd(session: nox.Session) -> None:
    _install(session)
    session.run("pytest", "tests/discounts/bdd/")
