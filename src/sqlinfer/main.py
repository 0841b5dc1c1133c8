"""
Main entry point: infer query types against Postgres and print them as JSON.
Either every query is typed or nothing is printed.
"""
import sys
import json
import logging
import asyncio
import argparse
from typing import List

import yaml

from sqlinfer.catalog.introspector import PostgresIntrospector
from sqlinfer.config import Config, load_config, parse_acronyms, parse_type_overrides, setup_logging
from sqlinfer.converters import ResultConverter
from sqlinfer.errors import InferenceError
from sqlinfer.inference.inferrer import TypeInferrer
from sqlinfer.inference.models import InferenceResult
from sqlinfer.queries.loader import QueryLoader
from sqlinfer.queries.models import SourceQuery
from sqlinfer.types.resolver import TypeResolver
from sqlinfer.utils.casing import Caser

logger = logging.getLogger(__name__)


async def run_inference(config: Config, queries: List[SourceQuery]) -> InferenceResult:
    """Run one generation: a fresh introspector, resolver and inferrer."""
    caser = Caser(config.acronyms)
    async with PostgresIntrospector(config.database_url, concurrency=config.concurrency) as db:
        resolver = TypeResolver(
            db,
            pkg_path=config.package_path,
            caser=caser,
            overrides=config.type_overrides,
        )
        inferrer = TypeInferrer(db, resolver, caser)
        return await inferrer.infer_all(
            queries,
            concurrency=config.concurrency,
            timeout_seconds=config.timeout_seconds,
        )


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='sqlinfer - Infer Go types for named SQL queries from Postgres',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sqlinfer --query-dir queries --package github.com/acme/app/author
  sqlinfer --query-dir queries --acronym id --acronym oids=OIDs
  sqlinfer --query-dir queries --go-type int8=github.com/acme/types.BigInt

  # Environment variables (CLI flags take precedence):
  DATABASE_URL, SQLINFER_PACKAGE_PATH, SQLINFER_ACRONYMS,
  SQLINFER_TYPE_OVERRIDES, SQLINFER_CONCURRENCY, SQLINFER_TIMEOUT_SECONDS
        """
    )

    parser.add_argument(
        '--query-dir',
        help='Directory of query YAML files (overrides SQLINFER_QUERIES_PATH)'
    )
    parser.add_argument(
        '--postgres-connection',
        help='Postgres connection URL (overrides DATABASE_URL)'
    )
    parser.add_argument(
        '--package',
        help='Go package path for generated types (overrides SQLINFER_PACKAGE_PATH)'
    )
    parser.add_argument(
        '--acronym',
        action='append',
        default=[],
        help='Acronym like "id" or "oids=OIDs"; may be repeated'
    )
    parser.add_argument(
        '--go-type',
        action='append',
        default=[],
        help='Type override like "text=github.com/acme/types.String"; may be repeated'
    )
    parser.add_argument('--concurrency', type=int, help='Queries described at once')
    parser.add_argument('--timeout', type=float, help='Deadline for the run in seconds')
    parser.add_argument('--output', help='Write JSON here instead of stdout')
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR')

    return parser.parse_args(argv)


def main(argv=None):
    """
    Load configuration and queries, run inference, write the JSON result.

    Exits with status 1 on any error; partial output is never written.
    """
    args = parse_args(argv)

    try:
        config = load_config(
            database_url=args.postgres_connection,
            package_path=args.package,
            acronyms=parse_acronyms(args.acronym) or None,
            type_overrides=parse_type_overrides(args.go_type) or None,
            concurrency=args.concurrency,
            timeout_seconds=args.timeout,
            log_level=args.log_level,
        )
    except ValueError as e:
        setup_logging()
        logger.error(str(e))
        sys.exit(1)

    setup_logging(config.log_level)

    try:
        loader = QueryLoader(args.query_dir)
        queries = loader.get_all_queries()
        if not queries:
            logger.error(f"No queries found in {loader.queries_dir}")
            sys.exit(1)

        logger.info(f"Inferring types for {len(queries)} queries")
        result = asyncio.run(run_inference(config, queries))
    except (InferenceError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Type inference failed: {e}")
        sys.exit(1)

    output = json.dumps(ResultConverter(config.package_path).convert(result), indent=2)
    if args.output:
        with open(args.output, 'w') as f:
            f.write(output + "\n")
        logger.info(f"Wrote {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
