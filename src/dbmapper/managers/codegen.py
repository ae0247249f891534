"""Code generation manager for writing mapped types from a live schema."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dbmapper.exceptions import GenerationError, SnapshotError
from dbmapper.managers.mapping import MappingSynthesizer, module_name_for
from dbmapper.managers.relationship import AuditPredicate, RelationshipAnalyzer

logger = logging.getLogger(__name__)


class CodegenManager:
    """Generates mapped type and repository modules for every table."""

    def __init__(
        self,
        provider,
        entity_package: str = "models",
        bidirectional: bool = True,
        detect_many_to_many: bool = True,
        is_audit_column: Optional[AuditPredicate] = None,
        skip_existing: bool = True,
    ):
        """Initialize codegen manager.

        Args:
            provider: Snapshot provider offering ``get_tables()`` and
                ``get_snapshot(table)``
            entity_package: Import path of the generated package
            bidirectional: Whether to emit inverse collections
            detect_many_to_many: Whether to classify pure join tables
            is_audit_column: Predicate for audit columns a join table may carry
            skip_existing: Leave files that already exist untouched
        """
        self.provider = provider
        self.skip_existing = skip_existing
        self.analyzer = RelationshipAnalyzer(
            is_audit_column=is_audit_column,
            detect_many_to_many=detect_many_to_many,
        )
        self.synthesizer = MappingSynthesizer(
            entity_package=entity_package, bidirectional=bidirectional
        )

    def generate_models(
        self,
        output_dir: Union[str, Path],
        repository_dir: Optional[Union[str, Path]] = None,
    ) -> Dict[str, Any]:
        """Generate mapped type and repository files for the whole schema.

        A table whose snapshot can't be read, or whose mapping can't be
        generated, is reported in ``errors`` and skipped; the rest of the
        batch still runs.

        Args:
            output_dir: Directory for mapped type modules and ``base.py``
            repository_dir: Directory for repository modules (defaults to
                ``output_dir``)

        Returns:
            Dictionary with generation results
        """
        output_path = Path(output_dir)
        repository_path = Path(repository_dir) if repository_dir else output_path
        output_path.mkdir(parents=True, exist_ok=True)
        repository_path.mkdir(parents=True, exist_ok=True)

        results: Dict[str, Any] = {
            "output_dir": str(output_path),
            "repository_dir": str(repository_path),
            "files_generated": [],
            "files_skipped": [],
            "tables_processed": [],
            "join_tables": [],
            "warnings": [],
            "errors": [],
        }

        snapshots = {}
        for table in self.provider.get_tables():
            try:
                snapshot = self.provider.get_snapshot(table)
            except SnapshotError as e:
                logger.error(str(e))
                results["errors"].append(str(e))
                continue

            if not snapshot.primary_keys:
                detected = self.synthesizer.detect_primary_key(table, snapshot.columns)
                if detected:
                    logger.info(f"Using '{detected[0]}' as primary key of table '{table}'")
                    snapshot = snapshot.with_primary_keys(detected)

            snapshots[table] = snapshot

        graph = self.analyzer.analyze(snapshots)
        results["join_tables"] = graph.list_many_to_many_tables()

        for edge in graph.unresolved_edges:
            results["warnings"].append(
                f"Foreign key {edge.source_table}.{edge.source_column} references "
                f"unknown table '{edge.referenced_table}'; mapped as a plain column"
            )

        self._write_file(
            output_path / "__init__.py", '"""Generated mapped types."""\n', results
        )
        if repository_path != output_path:
            self._write_file(
                repository_path / "__init__.py", '"""Generated repositories."""\n', results
            )
        self._write_file(output_path / "base.py", self.synthesizer.synthesize_base(), results)

        names = self.synthesizer.resolve_names(graph)

        for table, snapshot in snapshots.items():
            if graph.is_many_to_many_table(table):
                logger.info(f"Skipping join table '{table}'")
                continue

            logger.info(f"Generating mapping for table '{table}'")
            try:
                plan = self.synthesizer.plan_fields(snapshot, graph, names)
                mapping = self.synthesizer.render_mapping(plan)
                repository = self.synthesizer.synthesize_data_access_type(plan.class_name)
                module = module_name_for(plan.class_name)
            except GenerationError as e:
                logger.error(str(e))
                results["errors"].append(str(e))
                continue

            results["warnings"].extend(plan.warnings)

            self._write_file(output_path / f"{module}.py", mapping, results)
            self._write_file(
                repository_path / f"{module}_repository.py", repository, results
            )
            results["tables_processed"].append(table)

        return results

    def _write_file(self, path: Path, content: str, results: Dict[str, Any]) -> None:
        """Write a generated file unless it already exists."""
        if self.skip_existing and path.exists():
            logger.info(f"Skipping existing file {path}")
            results["files_skipped"].append(str(path))
            return

        with open(path, "w") as f:
            f.write(content)

        results["files_generated"].append(str(path))
