# legal_ml/services/scoring/base.py
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Callable, ClassVar, Optional

from pydantic import TypeAdapter

from legal_ml.models.schemas import ModelType

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Timezone-aware current time in the server's local zone"""
    return datetime.now().astimezone()


class ResultPolicy(str, Enum):
    """How a scoring operation reports internal failures"""
    STRICT = "strict"  # log, then propagate to the caller
    DEFAULT_ON_FAILURE = "default_on_failure"  # log, then return default_result()


class ScoringModel(ABC):
    """
    Common capability of the five scoring strategies.

    Subclasses declare their model type, failure policy and result schema;
    the engine uses ``cache_key``/``cache_ttl`` to decide whether a call is
    served through the result cache.
    """

    model_type: ClassVar[ModelType]
    policy: ClassVar[ResultPolicy] = ResultPolicy.STRICT
    result_adapter: ClassVar[TypeAdapter]

    def __init__(self, cache_ttl: Optional[int] = None, clock: Optional[Clock] = None):
        self.cache_ttl = cache_ttl
        self._clock = clock or local_now

    @abstractmethod
    async def score(self, *args, **kwargs) -> Any:
        ...

    def cache_key(self, *args, **kwargs) -> Optional[str]:
        """Key under which the result is cached; None means never cached"""
        return None

    def default_result(self) -> Any:
        raise NotImplementedError(f"{type(self).__name__} has no default result")

    def encode(self, result: Any) -> Any:
        return self.result_adapter.dump_python(result, mode="json", by_alias=True)

    def decode(self, payload: Any) -> Any:
        return self.result_adapter.validate_python(payload)
