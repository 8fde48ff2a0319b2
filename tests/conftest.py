import os
import sys

import pytest

# Ensure repo-local imports (`import engine`, `import web`) resolve without extra setup.
repo_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if repo_dir not in sys.path:
    sys.path.insert(0, repo_dir)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "-S",
        "--slow",
        action="store_true",
        default=False,
        dest="run_slow",
        help="Run tests marked with @pytest.mark.slow (deep perft, long searches)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if not config.getoption("run_slow"):
        skip_slow = pytest.mark.skip(reason="use -S/--slow to enable slow tests")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)
