"""
Base Service for recorder one-shot services.

Provides abstract base class for services with:
- Logging
- Factory methods (from_yaml/from_dict)
- Typed configuration
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Generic, Optional, TypeVar

import yaml
from pydantic import BaseModel

from .executor import Executor
from .logger import Logger

# Type variable for service configuration
ConfigT = TypeVar("ConfigT", bound=BaseModel)


class BaseService(ABC, Generic[ConfigT]):
    """
    Abstract base class for services that run against the database.

    Subclasses must:
    - Set SERVICE_NAME class attribute
    - Set CONFIG_CLASS for automatic config parsing
    - Implement run() method for main service logic

    Instance Attributes:
        _executor: Resilient query executor (access pool via _executor.pool)
        _config: Service configuration (Pydantic model)
        _logger: Structured logger
    """

    SERVICE_NAME: ClassVar[str] = "base_service"
    CONFIG_CLASS: ClassVar[Optional[type[BaseModel]]] = None

    def __init__(self, executor: Executor, config: Optional[ConfigT] = None) -> None:
        self._executor = executor
        self._config: Optional[ConfigT] = config
        self._logger = Logger(self.SERVICE_NAME)

    @abstractmethod
    async def run(self) -> Any:
        """Execute main service logic."""
        ...

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, executor: Executor, **kwargs: Any) -> "BaseService":
        """Create service from YAML configuration file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data, executor=executor, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], executor: Executor, **kwargs: Any) -> "BaseService":
        """Create service from dictionary configuration."""
        config = None
        if cls.CONFIG_CLASS is not None:
            config = cls.CONFIG_CLASS(**data)
        return cls(executor=executor, config=config, **kwargs)

    @property
    def config(self) -> Optional[ConfigT]:
        """Get service configuration (typed to CONFIG_CLASS)."""
        return self._config
