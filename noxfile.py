"""Nox configuration."""

import nox                                       # pylint: disable=import-error


@nox.session(python=['3.10', '3.11', '3.12'], reuse_venv=True)
def test(session):
    """Run the test suite."""
    session.install('-e', '.[test]')
    args = ['pytest', *session.posargs, '-vv', '-x', 'tests']
    session.run(*args)


@nox.session(reuse_venv=True)
def release(session):
    """Generate a release."""
    session.install('build')
    session.run('python', '-m', 'build')
