"""
Prefect orchestration for catalog harvesting
Wraps CatalogFetcher operations into Prefect tasks and a single harvest flow

python -m catalog_harvester.prefect_harvest_flow --config configs/shopify_catalog.toml --run
"""

import argparse
import traceback
from pathlib import Path
from typing import Dict, List, Any, Optional

from prefect import flow, task, get_run_logger

from .config_loader import ConfigLoader, ConfigurationError, MissingEnvironmentError
from .fetch_result import FetchResult
from .logging_config import configure_logging
from .resource_fetchers import CatalogFetcher


# ===================================================================
# PREFECT TASKS
# ===================================================================

@task(
    name="validate_harvest_configuration",
    description="Validate TOML configuration and the access token variable",
    retries=0
)
def validate_harvest_configuration(config_path: str) -> Dict[str, Any]:
    """
    Validate TOML configuration and environment variables

    Returns:
        Validation results and config summary
    """
    logger = get_run_logger()
    logger.info(f"Validating configuration: {config_path}")

    try:
        config = ConfigLoader.load_toml_config(Path(config_path))
    except (ConfigurationError, MissingEnvironmentError) as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    configure_logging(config)
    logger.info("Configuration and environment validation passed")
    return {
        'status': 'valid',
        'config_summary': {
            'api_name': config.name,
            'base_url': config.base_url,
            'page_sizes': dict(config.page_sizes),
            'threshold_percent': config.rate_limits.threshold_percent,
            'max_attempts': config.retries.max_attempts,
            'target_publication_id': config.target_publication_id
        }
    }


# Fetch tasks do not use Prefect retries; GraphQLClient owns the retry budget
@task(name="fetch_collection_list", description="List every collection", retries=0)
def fetch_collection_list(config_path: str) -> Dict[str, Any]:
    logger = get_run_logger()
    config = ConfigLoader.load_toml_config(Path(config_path))
    fetcher = CatalogFetcher(config)

    with fetcher.client:
        result = fetcher.fetch_collections()

    logger.info(f"Collections: {result.outcome.value}, {len(result.items)} found")
    return summarise_result("collections", result)


@task(name="harvest_collection_products", description="Product ids of one collection", retries=0)
def harvest_collection_products(config_path: str, collection_id: str) -> Dict[str, Any]:
    logger = get_run_logger()
    config = ConfigLoader.load_toml_config(Path(config_path))
    fetcher = CatalogFetcher(config)

    with fetcher.client:
        result = fetcher.fetch_collection_products(collection_id)

    logger.info(f"Collection {collection_id}: {result.outcome.value}, {len(result.items)} products")
    return summarise_result(f"collection:{collection_id}", result)


@task(name="harvest_publication_products", description="Product ids of one publication", retries=0)
def harvest_publication_products(config_path: str,
                                 publication_id: Optional[str] = None) -> Dict[str, Any]:
    logger = get_run_logger()
    config = ConfigLoader.load_toml_config(Path(config_path))
    fetcher = CatalogFetcher(config)

    with fetcher.client:
        result = fetcher.fetch_publication_products(publication_id)

    resolved_id = publication_id or config.target_publication_id
    logger.info(f"Publication {resolved_id}: {result.outcome.value}, {len(result.items)} products")
    return summarise_result(f"publication:{resolved_id}", result)


# ===================================================================
# PREFECT FLOW
# ===================================================================

@flow(
    name="catalog_harvest_flow",
    description="Harvest collections, collection products and publication products"
)
def catalog_harvest_flow(config_path: str,
                         collection_ids: Optional[List[str]] = None,
                         include_publication: bool = False,
                         publication_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Harvest catalog data sequentially, one request in flight at a time

    Args:
        config_path: Path to TOML configuration file
        collection_ids: Collections to harvest; all collections when omitted
        include_publication: Also harvest the publication's products
        publication_id: Publication to harvest, defaults to the configured target

    Returns:
        Summary dictionary with pipeline status and per-resource outcomes
    """
    logger = get_run_logger()
    logger.info("Starting catalog harvest pipeline")

    try:
        validation_results = validate_harvest_configuration(config_path)

        collection_list = None
        if collection_ids is None:
            collection_list = fetch_collection_list(config_path)
            collection_ids = [record['id'] for record in collection_list['items']]
            logger.info(f"Harvesting {len(collection_ids)} collections")

        resource_results = []
        if collection_list is not None:
            resource_results.append(collection_list)

        for collection_id in collection_ids:
            resource_results.append(harvest_collection_products(config_path, collection_id))

        if include_publication:
            resource_results.append(harvest_publication_products(config_path, publication_id))

        summary = build_harvest_summary(resource_results)
        summary['execution_summary'] = {'config_validation': validation_results}

        logger.info(
            f"Catalog harvest finished: {summary['pipeline_status']} "
            f"({summary['failed_resources']} of {summary['total_resources']} resources failed)"
        )
        return summary

    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        return {
            'pipeline_status': 'FAILED',
            'error': str(e)
        }


# ===================================================================
# UTILITY FUNCTIONS
# ===================================================================

def summarise_result(resource: str, result: FetchResult) -> Dict[str, Any]:
    """Flatten a FetchResult into a serialisable task result"""
    return {
        'resource': resource,
        'outcome': result.outcome.value,
        'item_count': len(result.items),
        'items': result.items,
        'error': str(result.error) if result.error else None,
        'error_type': type(result.error).__name__ if result.error else None
    }


def build_harvest_summary(resource_results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Combine per-resource summaries into a pipeline result

    SUCCESS when nothing failed, PARTIAL when some resources failed,
    FAILED when every resource failed.
    """
    total = len(resource_results)
    failed = [r for r in resource_results if r['outcome'] == 'failed']
    empty = [r for r in resource_results if r['outcome'] == 'empty']

    if not failed:
        status = 'SUCCESS'
    elif len(failed) < total:
        status = 'PARTIAL'
    else:
        status = 'FAILED'

    return {
        'pipeline_status': status,
        'total_resources': total,
        'failed_resources': len(failed),
        'empty_resources': len(empty),
        'total_items': sum(r['item_count'] for r in resource_results),
        'resource_results': resource_results
    }


# ===================================================================
# COMMAND LINE INTERFACE
# ===================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    parser = argparse.ArgumentParser(
        description="Prefect catalog harvest pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Harvest every collection's products
  python -m catalog_harvester.prefect_harvest_flow --config configs/shopify_catalog.toml --run

  # Harvest selected collections and the target publication
  python -m catalog_harvester.prefect_harvest_flow --config configs/shopify_catalog.toml --run --collections 123 456 --publication

  # Validate configuration only
  python -m catalog_harvester.prefect_harvest_flow --config configs/shopify_catalog.toml --validate-only
        """
    )

    parser.add_argument("--config", required=True, help="Path to TOML configuration file")
    parser.add_argument("--run", action="store_true", help="Run the harvest pipeline")
    parser.add_argument("--validate-only", action="store_true", help="Only validate configuration")
    parser.add_argument("--collections", nargs="+", help="Collection ids to harvest (default: all)")
    parser.add_argument("--publication", action="store_true", help="Also harvest publication products")
    parser.add_argument("--publication-id", help="Publication id (default: configured target)")
    parser.add_argument("--verbose", action="store_true", help="Show per-resource details")

    args = parser.parse_args(argv)

    try:
        if args.validate_only:
            print("Validating configuration and environment...")
            result = validate_harvest_configuration(args.config)
            print("Configuration validation passed!")
            print(f"API: {result['config_summary']['api_name']}")
            print(f"Base URL: {result['config_summary']['base_url']}")
            print(f"Rate limit threshold: {result['config_summary']['threshold_percent']}%")
            return 0

        if not args.run:
            parser.print_help()
            return 1

        print("Starting catalog harvest pipeline...")
        result = catalog_harvest_flow(
            config_path=args.config,
            collection_ids=args.collections,
            include_publication=args.publication,
            publication_id=args.publication_id
        )

        print("\n" + "=" * 70)
        print("HARVEST EXECUTION SUMMARY")
        print("=" * 70)
        print(f"Status: {result.get('pipeline_status', 'UNKNOWN')}")

        if 'error' in result:
            print(f"Pipeline failed: {result['error']}")
            return 1

        print(f"Resources: {result['total_resources']} "
              f"({result['failed_resources']} failed, {result['empty_resources']} empty)")
        print(f"Total items: {result['total_items']}")

        if args.verbose:
            print("\nResource Details:")
            for resource_result in result['resource_results']:
                line = (f"  {resource_result['outcome'].upper()} {resource_result['resource']}: "
                        f"{resource_result['item_count']} items")
                if resource_result['error']:
                    line += f" ({resource_result['error_type']}: {resource_result['error']})"
                print(line)

        print("=" * 70)
        return 0 if result['pipeline_status'] == 'SUCCESS' else 1

    except Exception as e:
        print(f"\nExecution failed: {e}")
        if args.verbose:
            print(f"Traceback: {traceback.format_exc()}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
