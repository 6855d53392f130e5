"""Tests for pt_common.errors, pt_common.response and pt_common.filters."""

import pytest

from src.pt_common.errors import (
    AppError,
    HolderNotFoundError,
    ImportSessionNotFoundError,
    InsufficientLotQuantityError,
    LotHasSellsError,
    RequestValidationFailedError,
)
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1001, message="test"), Exception)


class TestSpecificErrors:
    def test_not_found_is_404(self) -> None:
        err = HolderNotFoundError(7)
        assert err.http_status == 404
        assert "7" in err.message

    def test_oversell_is_400(self) -> None:
        err = InsufficientLotQuantityError(3, 12, 10)
        assert err.code // 1000 == 2
        assert err.http_status == 400

    def test_lot_with_sells_is_400(self) -> None:
        assert LotHasSellsError().http_status == 400

    def test_import_session(self) -> None:
        err = ImportSessionNotFoundError()
        assert err.code // 1000 == 6
        assert err.message == "Import session expired or not found."

    def test_validation(self) -> None:
        assert RequestValidationFailedError().code == 9000


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": 1})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": 1}
        assert resp.request_id.startswith("req_")

    def test_error(self) -> None:
        resp = error_response(2001, "bad")
        assert resp.code == 2001
        assert resp.data is None


class TestParseHolder:
    @pytest.mark.parametrize("raw", [None, "", "all", "ALL", "  "])
    def test_every_holder(self, raw: str | None) -> None:
        assert parse_holder(raw) is None

    def test_numeric(self) -> None:
        assert parse_holder(" 3 ") == 3
        assert parse_holder(4) == 4

    def test_garbage(self) -> None:
        with pytest.raises(RequestValidationFailedError):
            parse_holder("abc")
