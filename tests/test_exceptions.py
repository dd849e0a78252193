import logging

import pytest

from radicale_mcp.monitoring import ConflictError, ErrorCode, RemoteError, handle_exceptions

LOGGER = "radicale_mcp.monitoring.exceptions"


def test_sync_function_reraises_the_original_error(caplog):
    error = KeyError("missing")

    @handle_exceptions("sync-task")
    def explode():
        raise error

    with caplog.at_level(logging.WARNING, logger=LOGGER):
        with pytest.raises(KeyError) as excinfo:
            explode()

    assert excinfo.value is error
    [record] = caplog.records
    assert record.levelno == logging.ERROR
    assert record.error['error_code'] == ErrorCode.INTERNAL_ERROR.value
    assert record.error['details'] == {'context': "sync-task"}


@pytest.mark.asyncio
async def test_async_function_reraises_domain_errors(caplog):
    @handle_exceptions("async-task")
    async def write():
        raise ConflictError("https://dav.example.com/alice/cal/a.ics", '"v1"')

    with caplog.at_level(logging.WARNING, logger=LOGGER):
        with pytest.raises(ConflictError) as excinfo:
            await write()

    assert excinfo.value.details['context'] == "async-task"
    [record] = caplog.records
    assert record.levelno == logging.WARNING
    assert record.getMessage().startswith("[async-task] Write conflict on")


@pytest.mark.asyncio
async def test_results_pass_through():
    @handle_exceptions("ok")
    async def fetch(value):
        return value * 2

    assert fetch.__name__ == "fetch"
    assert await fetch(21) == 42


def test_error_counts_grow_per_context(caplog):
    @handle_exceptions("counted")
    def fail():
        raise RemoteError("Failed to delete object", 500, "boom")

    with caplog.at_level(logging.WARNING, logger=LOGGER):
        for _ in range(2):
            with pytest.raises(RemoteError):
                fail()

    assert [r.error_count for r in caplog.records][-1] == \
        caplog.records[0].error_count + 1
