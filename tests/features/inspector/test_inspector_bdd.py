"""BDD tests for inspector divergence features."""

import pytest
from pytest_bdd import scenarios

scenarios(".")

pytestmark = [
    pytest.mark.tier(2),
    pytest.mark.tra("Inspector.ExpectedState"),
]
