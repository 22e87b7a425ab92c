from __future__ import annotations

from shipline.core.errors import ErrorCode


def test_exit_codes_are_stable() -> None:
    assert [int(c) for c in ErrorCode] == [0, 1, 2, 3, 4, 5, 6, 7]


def test_str_is_human_readable() -> None:
    assert str(ErrorCode.PROPAGATION_ERROR) == "propagation error"


def test_success_flags() -> None:
    assert ErrorCode.OK.is_success
    assert not ErrorCode.OK.is_error
    assert ErrorCode.BUILD_ERROR.is_error
