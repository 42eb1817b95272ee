"""
Base classes for diagnostic tools.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Type

from ..errors import ErrorCode, validation_error
from ..log import FieldLogger, get_logger
from ..parameters import Parameters
from ..result import Result

if TYPE_CHECKING:
    from ..client import NetworkClient


@dataclass
class ToolModel:
    """
    Descriptor a UI layer uses to present a tool.

    Attributes:
        name: Unique tool identifier
        description: One-line description
        parameters: Parameters class the tool accepts
    """

    name: str
    description: str
    parameters: Type[Parameters]


class DiagnosticTool(ABC):
    """
    Base class for diagnostic tools.

    Subclasses set name, description and parameters_class, and implement
    run(). execute() validates before running, so run() only sees valid
    parameters.
    """

    name: str = ""
    description: str = ""
    parameters_class: Type[Parameters] = Parameters

    def __init__(self, client: "NetworkClient", logger: Optional[FieldLogger] = None):
        self.client = client
        self._logger = logger or get_logger(f"nettrace.tools.{self.name}")

    def new_parameters(self, **values) -> Parameters:
        """Parameters for this tool with defaults for everything not given."""
        return self.parameters_class(**values)

    def get_model(self) -> ToolModel:
        return ToolModel(name=self.name, description=self.description, parameters=self.parameters_class)

    def validate(self, params: Parameters) -> None:
        """
        Validate parameters for this tool.

        Raises:
            NetTraceError: validation-typed, on the wrong parameter type or
                invalid values
        """
        if not isinstance(params, self.parameters_class):
            raise validation_error(
                ErrorCode.INVALID_PARAMETERS,
                f"{self.name} expects {self.parameters_class.__name__}, got {type(params).__name__}",
                tool=self.name,
            )
        params.validate()

    async def execute(self, params: Parameters) -> Result:
        self.validate(params)
        return await self.run(params)

    @abstractmethod
    async def run(self, params: Parameters) -> Result:
        """Run the diagnostic with already validated parameters."""
