import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .config import ImportConfig
from .dedup.index import ExistingIndex
from .dedup.resolver import DuplicateResolver
from .exceptions import CopyIOError, ResolutionIOError
from .metadata.extract import MetadataExtractor
from .organization.copier import FileCopier
from .reporting import DecisionReport, RunStatistics
from .scanning.crawler import MediaCrawler


class MediaImporterApp:
    def __init__(self,
                 config: ImportConfig,
                 crawler: Optional[MediaCrawler] = None,
                 metadata: Optional[MetadataExtractor] = None):
        self.config = config
        self.crawler = crawler or MediaCrawler()
        self.metadata = metadata or MetadataExtractor()
        self.stats = RunStatistics()

    def run(self) -> RunStatistics:
        """
        Executes the import pipeline.
        1. Index existing files (tolerates per-file failures)
        2. Crawl search paths and resolve each file against the index
        3. Copy new and higher-quality files into target_dir/YYYY_MM_DD/

        Raises:
            InvalidConfiguration: malformed extension list, before anything is read.
            ResolutionIOError, CopyIOError: on the first failing file unless
                keep_going is set, in which case errors are collected in the stats.
        """
        cfg = self.config
        extensions = cfg.extension_set()

        # --- Step 1: Indexing ---
        logging.info(f"Indexing existing files in {len(cfg.existing_paths)} location(s)...")
        index = ExistingIndex.build(
            cfg.existing_paths,
            extensions,
            policy=cfg.collision_policy,
            crawler=self.crawler,
            metadata=self.metadata,
        )
        self.stats.indexed = len(index)
        self.stats.index_failures = index.failures

        # --- Step 2 & 3: Resolve and Copy ---
        resolver = DuplicateResolver(index, self.metadata)
        copier = FileCopier(cfg.target_dir)
        report = DecisionReport(cfg.report_csv) if cfg.report_csv else nullcontext()

        logging.info(f"Searching {len(cfg.search_paths)} location(s) for new files...")
        with report:
            candidates = self.crawler.find_media_files(cfg.search_paths, extensions)
            for path in tqdm(candidates, desc="Importing", unit="file"):
                self.stats.record_found()
                try:
                    self._process(path, resolver, copier, report)
                except (ResolutionIOError, CopyIOError) as e:
                    if not cfg.keep_going:
                        raise
                    logging.warning(f"Failed to import {path}: {e}")
                    self.stats.record_error(path, str(e))

        logging.info("Import phase complete.")
        return self.stats

    def _process(self, path: Path, resolver: DuplicateResolver, copier: FileCopier, report):
        resolution = resolver.resolve(path)
        self.stats.record_resolution(resolution)

        destination = None
        if resolution.decision.requires_copy:
            destination = copier.copy(resolution)
            self.stats.record_copy(resolution)

        if isinstance(report, DecisionReport):
            report.write(resolution, destination)
