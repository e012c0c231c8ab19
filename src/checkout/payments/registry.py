"""Payment processor registry.

Maps a payment method string to its processor. The registry is filled
explicitly in ``checkout.composition``; nothing is discovered at runtime.
"""

import structlog

from checkout.errors import UnsupportedMethodError
from checkout.payments.processors import PaymentProcessor, ProcessorKind

logger = structlog.get_logger(__name__)


class PaymentProcessorRegistry:
    def __init__(self) -> None:
        self._processors: dict[str, PaymentProcessor] = {}

    def register(self, processor: PaymentProcessor) -> None:
        if processor.method in self._processors:
            logger.warning("Overriding payment processor", method=processor.method)
        self._processors[processor.method] = processor

    def get(self, method: str) -> PaymentProcessor:
        processor = self._processors.get(method)
        if processor is None:
            raise UnsupportedMethodError(method)
        return processor

    def is_supported(self, method: str) -> bool:
        return method in self._processors

    def supported_methods(self) -> list[str]:
        return sorted(self._processors)

    def methods_of_kind(self, kind: ProcessorKind) -> list[str]:
        return sorted(method for method, processor in self._processors.items() if processor.kind == kind)
