from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from topic_monitor.core.errors import MonitoringStateError, SessionNotFoundError
from topic_monitor.infra.redis_history_store import HistoryStoreError


@contextmanager
def domain_errors() -> Iterator[None]:
    try:
        yield
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except MonitoringStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except HistoryStoreError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
