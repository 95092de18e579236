"""
Icon resolution: pass-through with explicit absence.

Whether an icon actually loads is left to the rendering layer.
"""

from typing import Dict, Iterable, List, Optional

from herbst.config_schema import Service, ServiceSection


def resolve(src: Optional[str] = None) -> Optional[str]:
    if not src:
        return None
    return src


def resolve_service_icons(services: Iterable[Service]) -> Dict[str, Optional[str]]:
    """Map each service name to its resolved icon. Names must be unique, as within one section."""
    return {service.name: resolve(service.icon) for service in services}


def resolve_section_icons(sections: Iterable[ServiceSection]) -> List[Dict[str, Optional[str]]]:
    """Resolved icons per section, in display order; the same name may appear in several sections."""
    return [resolve_service_icons(section.services) for section in sections]
