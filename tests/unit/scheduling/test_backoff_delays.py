from __future__ import annotations

import pytest

from repo_symlink.scheduling import constant_delay, exponential_delay, linear_delay


def test_constant_delay_ignores_retry_count() -> None:
    delay = constant_delay(0.2)

    assert [delay(retries) for retries in range(3)] == [0.2, 0.2, 0.2]


def test_linear_delay_grows_by_base_per_retry() -> None:
    delay = linear_delay(0.5)

    assert delay(0) == 0.5
    assert delay(1) == 1.0
    assert delay(2) == 1.5


@pytest.mark.parametrize(("retries", "expected"), [(0, 0.25), (1, 0.5), (3, 2.0)])
def test_exponential_delay_doubles(retries: int, expected: float) -> None:
    assert exponential_delay(0.25)(retries) == expected
