import pytest

from package_protections.governance import Configuration, EvaluationContext


@pytest.fixture
def context(tmp_path):
    """Context over an empty repository with the default protections."""
    return EvaluationContext(root=str(tmp_path), configuration=Configuration(root=str(tmp_path)))
