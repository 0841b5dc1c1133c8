"""Load and validate source queries from YAML manifests."""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional
import yaml
from pydantic import ValidationError

from sqlinfer.errors import DuplicateQueryError
from .models import SourceQuery


logger = logging.getLogger(__name__)


class QueryLoader:
    """
    Load source queries from YAML files.

    A file holds either one query mapping or a list under a "queries" key:

        queries:
          - name: FindByFirstName
            sql: SELECT first_name FROM author WHERE first_name = $1;
            params: [FirstName]
            kind: many
    """

    def __init__(self, queries_dir: Optional[str] = None):
        """
        Initialize query loader.

        Args:
            queries_dir: Directory containing query YAML files.
                        If None, uses SQLINFER_QUERIES_PATH env var.
                        Raises ValueError if neither is provided.
        """
        if queries_dir is None:
            queries_dir = os.getenv("SQLINFER_QUERIES_PATH")

        if queries_dir is None:
            raise ValueError(
                "queries_dir must be provided or SQLINFER_QUERIES_PATH env var must be set"
            )

        self.queries_dir = Path(queries_dir)
        self.queries: Dict[str, SourceQuery] = {}

        if not self.queries_dir.exists():
            logger.warning(f"Queries directory not found: {self.queries_dir}")
            return

        self._load_all_queries()

    def _load_all_queries(self):
        """Load all YAML files in name order and validate with Pydantic."""
        if not self.queries_dir.is_dir():
            logger.error(f"Queries path is not a directory: {self.queries_dir}")
            return

        yaml_files = sorted(
            list(self.queries_dir.glob("*.yaml")) + list(self.queries_dir.glob("*.yml"))
        )

        if not yaml_files:
            logger.warning(f"No YAML files found in {self.queries_dir}")
            return

        logger.info(f"Loading queries from {self.queries_dir}")

        for yaml_file in yaml_files:
            try:
                with open(yaml_file, 'r') as f:
                    raw_data = yaml.safe_load(f)

                if not raw_data:
                    logger.warning(f"Empty YAML file: {yaml_file}")
                    continue

                if isinstance(raw_data, list):
                    entries = raw_data
                elif isinstance(raw_data, dict) and "queries" in raw_data:
                    entries = raw_data["queries"]
                else:
                    entries = [raw_data]
                if not isinstance(entries, list):
                    raise ValueError(f"{yaml_file}: queries must be a list")
                for entry in entries:
                    if not isinstance(entry, dict):
                        raise ValueError(f"{yaml_file}: query entry must be a mapping, got {entry!r}")
                    self._add(SourceQuery(**entry), yaml_file)

            except ValidationError as e:
                logger.error(f"Validation failed for {yaml_file}: {e}")
                raise
            except Exception as e:
                logger.error(f"Failed to load {yaml_file}: {e}")
                raise

        logger.info(f"Loaded {len(self.queries)} queries")

    def _add(self, query: SourceQuery, source: Path):
        if query.name in self.queries:
            raise DuplicateQueryError(f"Duplicate query name {query.name} in {source}")

        if query.placeholder_count() != len(query.param_names):
            logger.warning(
                f"Query {query.name} uses {query.placeholder_count()} placeholders "
                f"but names {len(query.param_names)} parameters"
            )

        self.queries[query.name] = query
        logger.debug(f"Loaded query: {query.name} (kind: {query.result_kind})")

    def get_query(self, name: str) -> Optional[SourceQuery]:
        """Get query by name."""
        return self.queries.get(name)

    def get_all_queries(self) -> List[SourceQuery]:
        """Get all queries in load order."""
        return list(self.queries.values())
