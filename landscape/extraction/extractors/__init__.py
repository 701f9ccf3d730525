"""Concrete extractor fleet.

``ALL_EXTRACTORS`` is the default registration order; the orchestrator
uses registry order as its tie-break when several extractors are ready.
"""

from landscape.extraction.extractors.basis import (
    DataDictionaryExtractor,
    NumberRangeExtractor,
    SystemInfoExtractor,
)
from landscape.extraction.extractors.finance import COConfigExtractor, FIConfigExtractor
from landscape.extraction.extractors.integration import CustomCodeExtractor, InterfaceExtractor
from landscape.extraction.extractors.logistics import (
    MMConfigExtractor,
    PPConfigExtractor,
    SDConfigExtractor,
)
from landscape.extraction.extractors.process import (
    BatchJobExtractor,
    ChangeDocumentExtractor,
    UsageStatisticsExtractor,
)
from landscape.extraction.extractors.security import RoleAssignmentExtractor, SecurityExtractor
from landscape.extraction.registry import ExtractorRegistry

ALL_EXTRACTORS = [
    SystemInfoExtractor,
    DataDictionaryExtractor,
    FIConfigExtractor,
    COConfigExtractor,
    MMConfigExtractor,
    SDConfigExtractor,
    PPConfigExtractor,
    NumberRangeExtractor,
    ChangeDocumentExtractor,
    UsageStatisticsExtractor,
    BatchJobExtractor,
    RoleAssignmentExtractor,
    SecurityExtractor,
    InterfaceExtractor,
    CustomCodeExtractor,
]


def build_default_registry() -> ExtractorRegistry:
    return ExtractorRegistry(ALL_EXTRACTORS)
