"""Tests for the pipeline exception hierarchy and classifiers."""

import asyncio

import pytest

from core.errors.exceptions import (
    ConfigurationError,
    DecompressionError,
    EncodingError,
    ErrorCategory,
    NetworkError,
    ParseError,
    PipelineError,
    PublishError,
    RequestTimeoutError,
    ValidationError,
    classify_exception,
    classify_http_status,
    wrap_exception,
)


class TestPipelineError:
    def test_str_includes_cause(self):
        cause = ValueError("bad value")
        error = PipelineError("Outer failure", cause=cause)

        assert str(error) == "Outer failure | Caused by: bad value"
        assert error.cause is cause

    def test_str_without_cause(self):
        assert str(PipelineError("Just this")) == "Just this"

    def test_context_defaults_to_empty_dict(self):
        assert PipelineError("x").context == {}

    @pytest.mark.parametrize(
        "error_class,category",
        [
            (ConfigurationError, ErrorCategory.PERMANENT),
            (DecompressionError, ErrorCategory.PERMANENT),
            (EncodingError, ErrorCategory.PERMANENT),
            (ParseError, ErrorCategory.PERMANENT),
            (ValidationError, ErrorCategory.PERMANENT),
            (PublishError, ErrorCategory.TRANSIENT),
            (RequestTimeoutError, ErrorCategory.TRANSIENT),
        ],
    )
    def test_subclass_categories(self, error_class, category):
        error = error_class("failure")

        assert isinstance(error, PipelineError)
        assert error.category == category

    def test_permanent_errors_are_not_retryable(self):
        assert not EncodingError("schema mismatch").is_retryable
        assert PublishError("broker down").is_retryable


class TestNetworkError:
    def test_category_from_status(self):
        assert NetworkError("nope", status_code=404).category == ErrorCategory.PERMANENT
        assert NetworkError("auth", status_code=401).category == ErrorCategory.AUTH
        assert NetworkError("busy", status_code=503).category == ErrorCategory.TRANSIENT

    def test_defaults_to_transient_without_status(self):
        error = NetworkError("connection reset")

        assert error.category == ErrorCategory.TRANSIENT
        assert error.status_code is None

    def test_explicit_category_wins(self):
        error = NetworkError("x", status_code=404, category=ErrorCategory.TRANSIENT)

        assert error.category == ErrorCategory.TRANSIENT

    def test_keeps_url(self):
        assert NetworkError("x", url="http://files.tmdb.org/p").url == "http://files.tmdb.org/p"


class TestClassifyHttpStatus:
    @pytest.mark.parametrize(
        "status,category",
        [
            (401, ErrorCategory.AUTH),
            (403, ErrorCategory.PERMANENT),
            (404, ErrorCategory.PERMANENT),
            (429, ErrorCategory.TRANSIENT),
            (500, ErrorCategory.TRANSIENT),
            (503, ErrorCategory.TRANSIENT),
        ],
    )
    def test_classification(self, status, category):
        assert classify_http_status(status) == category


class TestClassifyException:
    def test_pipeline_error_uses_own_category(self):
        assert classify_exception(ParseError("x")) == ErrorCategory.PERMANENT

    def test_timeout_is_transient(self):
        assert classify_exception(asyncio.TimeoutError()) == ErrorCategory.TRANSIENT

    def test_connection_refused_is_transient(self):
        assert classify_exception(OSError("Connection refused")) == ErrorCategory.TRANSIENT

    def test_unknown_error(self):
        assert classify_exception(RuntimeError("odd")) == ErrorCategory.UNKNOWN


class TestWrapException:
    def test_returns_pipeline_error_unchanged(self):
        error = EncodingError("x")

        assert wrap_exception(error, context={"k": "v"}) is error
        assert error.context == {"k": "v"}

    def test_wraps_generic_exception(self):
        cause = KeyError("id")
        wrapped = wrap_exception(cause, default_class=ParseError)

        assert isinstance(wrapped, ParseError)
        assert wrapped.cause is cause


class TestHttpStatus:
    def test_client_errors_are_400(self):
        assert ValidationError("unknown type").http_status == 400

    @pytest.mark.parametrize(
        "error",
        [NetworkError("x"), EncodingError("x"), RequestTimeoutError("x"), PipelineError("x")],
    )
    def test_everything_else_is_500(self, error):
        assert error.http_status == 500
