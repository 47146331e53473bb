from dinsos_bot.services.result import Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success("REG-1")
        assert result.ok is True
        assert result.value == "REG-1"
        assert result.error is None


class TestResultFailure:
    def test_failure_creates_not_ok_result(self):
        result = Result.failure("database is locked", "db_error")
        assert result.ok is False
        assert result.error == "database is locked"
        assert result.error_code == "db_error"
        assert result.value is None

    def test_failure_default_code(self):
        assert Result.failure("boom").error_code == "unknown"
