from abc import ABC, abstractmethod
from typing import Any, Dict, Generator, List


class GenerationProvider(ABC):
    """
    Abstract Base Class for all site generation model providers.
    This defines the contract that all concrete provider implementations must follow.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """The official name of the provider (e.g., 'Google')."""
        pass

    @abstractmethod
    def get_available_models(self) -> List[str]:
        """
        Returns a list of available model names for this provider.

        Returns:
            A list of strings, where each string is a model identifier.
        """
        pass

    @abstractmethod
    def stream_generation(
        self,
        model_name: str,
        system_instruction: str,
        prompt: str,
        config: Dict[str, Any],
    ) -> Generator[str, None, None]:
        """
        Streams a generation response from the provider's API.

        Args:
            model_name: The specific model to use.
            system_instruction: Instruction describing the response contract.
            prompt: The rendered user prompt, including project files and history.
            config: Generation parameters like 'temperature' and 'top_p'.

        Yields:
            Text fragments of the response, in arrival order.
        """
        pass
