"""
Merge the legacy flat ``services`` list with grouped ``sections`` into one
ordered display list.
"""

from typing import List

from herbst.config_schema import HerbstConfig, ServiceSection

LEGACY_SECTION_TITLE = "Services"


def merge_services(config: HerbstConfig) -> List[ServiceSection]:
    """
    Configured sections first, in order. Legacy services whose name is not
    already listed in a section follow as one trailing section. The first
    occurrence of a name in the legacy list wins.
    """
    merged = list(config.sections)
    seen = {service.name for section in config.sections for service in section.services}

    legacy = []
    for service in config.services:
        if service.name in seen:
            continue
        seen.add(service.name)
        legacy.append(service)

    if legacy:
        merged.append(ServiceSection(title=LEGACY_SECTION_TITLE, services=legacy))
    return merged
