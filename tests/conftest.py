"""
Pytest configuration and fixtures for Snippet Harness tests.
"""

import os
import sys
from textwrap import dedent

import pytest
from hypothesis import Verbosity, settings

from snippet_harness.core.config import HarnessConfig, ToolchainOverride

settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def python_toolchains():
    """Toolchains backed by the running interpreter so tests need no compilers.

    `python` is interpreted; `pyc` is a compiled pseudo-language whose compile
    step is `py_compile`, giving a real compile/run stage split.
    """
    return {
        "python": ToolchainOverride(run=[sys.executable, "{source}"]),
        "pyc": ToolchainOverride(
            compile=[sys.executable, "-m", "py_compile", "{source}"],
            run=[sys.executable, "{source}"],
            source_name="main.py",
        ),
    }


@pytest.fixture
def harness_config(python_toolchains):
    return HarnessConfig(
        run_timeout_seconds=5,
        compile_timeout_seconds=10,
        jobs=2,
        toolchains=python_toolchains,
    )


@pytest.fixture
def tutorial_markdown():
    """A tutorial page with one broken and one fixed Python snippet."""
    return dedent(
        """\
        # Division by zero

        The broken version crashes at runtime:

        ```python
        # broken_01.py
        print(1 / 0)
        ```

        Here is the fixed version:

        ```python
        # fixed_01.py
        print(1 / 1)
        ```
        """
    )
