"""Compartment-based $everything traversal.

Instead of following references out of the root, this strategy runs one
reverse lookup per (resource type, search parameter) pair of a compartment
definition, e.g. "all Encounters whose patient is Patient/123". It does
not recurse and never fails.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .bundle import SearchBundle
from .closure_builder import ClosureOutcome
from .config import COMPARTMENT_DEFINITION_PATH, SEARCH_PARAMETERS_PATH
from .logging import ClosureTraceLogger, get_closure_trace_logger
from .resources import Resource
from .store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompartmentSearchParam:
    """Resource type and the parameters that link it to the compartment.

    ``element_paths`` maps a search parameter to the element paths it
    indexes; a parameter without an entry is looked up as a top-level
    element of the same name.
    """
    resource_type: str
    params: Tuple[str, ...]
    element_paths: Dict[str, Tuple[str, ...]] = field(default_factory=dict, hash=False)

    def paths_for(self, param: str) -> Tuple[str, ...]:
        return self.element_paths.get(param, (param,))


def load_search_parameter_paths(
    path: Path = SEARCH_PARAMETERS_PATH,
) -> Dict[str, Dict[str, Tuple[str, ...]]]:
    """Load the element paths of search parameters, by resource type."""
    with open(path, "r", encoding="utf-8") as f:
        table = json.load(f)
    return {
        resource_type: {param: tuple(paths) for param, paths in params.items()}
        for resource_type, params in table.items()
    }


def load_compartment_search_list(
    path: Path = COMPARTMENT_DEFINITION_PATH,
    search_parameters_path: Path = SEARCH_PARAMETERS_PATH,
) -> List[CompartmentSearchParam]:
    """Load the searchable resource types of a CompartmentDefinition.

    Entries without ``param`` are not reachable by search and are dropped.

    Args:
        path: Path to a CompartmentDefinition JSON file
        search_parameters_path: Element paths of the search parameters

    Returns:
        Search list in document order
    """
    with open(path, "r", encoding="utf-8") as f:
        definition = json.load(f)
    paths_by_type = load_search_parameter_paths(search_parameters_path)

    search_list = []
    for item in definition.get("resource", []):
        if not item.get("param"):
            continue
        resource_type = item["code"]
        known = paths_by_type.get(resource_type, {})
        params = tuple(item["param"])
        for param in params:
            if param not in known:
                logger.warning(f"No element path for {resource_type}.{param}, matching by element name")
        search_list.append(CompartmentSearchParam(
            resource_type=resource_type,
            params=params,
            element_paths={param: known[param] for param in params if param in known},
        ))

    logger.info(f"Loaded patient-related resources, count: {len(search_list)}")
    return search_list


class CompartmentSearchStrategy:
    """Collects resources that point at the root through compartment parameters."""

    def __init__(
        self,
        store: ResourceStore,
        search_list: List[CompartmentSearchParam],
        trace_logger: Optional[ClosureTraceLogger] = None,
    ):
        self.store = store
        self.search_list = search_list
        self.trace_logger = trace_logger if trace_logger is not None else get_closure_trace_logger()

    async def collect(self, root: Resource, bundle: SearchBundle) -> ClosureOutcome:
        """Append every resource linked to ``root`` by a compartment parameter.

        Resources reached through more than one parameter are added once.
        """
        root_reference = str(root.key)

        for item in self.search_list:
            for param in item.params:
                matches: List[Resource] = []
                for element_path in item.paths_for(param):
                    matches.extend(await self.store.search_by_reference(
                        item.resource_type, element_path, root_reference, root.information_model
                    ))
                self.trace_logger.log_reverse_search(item.resource_type, param, len(matches))

                for resource in matches:
                    reference = str(resource.key)
                    if bundle.contains_reference(reference):
                        continue
                    bundle = bundle.add_entry(resource, reference)

        return ClosureOutcome(bundle)
