"""
Pytest configuration for local imports and shared fixtures.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()


#============================================
def fixed_width_measure(text: str, font_name: str, font_size: float) -> float:
	"""
	Deterministic metrics: every character is half an em wide.
	"""
	return len(text) * font_size * 0.5


@pytest.fixture
def measure():
	return fixed_width_measure
