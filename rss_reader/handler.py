"""Lambda entry point for the scheduled background refresh."""

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

import boto3

from .config import Config
from .logging_config import create_execution_logger, setup_structured_logging
from .scheduler import create_background_refresher

METRICS_NAMESPACE = "RSS-Reader"


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Refresh the feed for one user and notify about new articles.

    Args:
        event: Scheduler event carrying ``user_id``
        context: Lambda context object

    Returns:
        Response dictionary with status and metrics
    """
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)

    try:
        config = Config()
    except ValueError as e:
        setup_structured_logging()
        error_msg = f"Invalid configuration: {e}"
        main_logger.error(error_msg, error=str(e))
        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "RSS reader refresh failed",
                    "execution_id": execution_id,
                    "error": error_msg,
                }
            ),
        }

    setup_structured_logging(config.log_level)
    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    user_id = (event or {}).get("user_id")
    if not user_id:
        main_logger.warning("No user_id in event, nothing to refresh")
        main_logger.log_execution_end(success=True, skipped=True)
        return {
            "statusCode": 200,
            "body": json.dumps(
                {
                    "message": "No authenticated user, refresh skipped",
                    "execution_id": execution_id,
                }
            ),
        }

    try:
        refresher = create_background_refresher(config, execution_id=execution_id)
        metrics = asyncio.run(refresher.run(user_id))
    except Exception as e:
        error_msg = f"Critical error in Lambda handler: {e}"
        main_logger.error(error_msg, user_id=user_id, error=str(e))
        main_logger.log_execution_end(success=False, error=error_msg)
        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "RSS reader refresh failed",
                    "execution_id": execution_id,
                    "error": error_msg,
                }
            ),
        }

    send_cloudwatch_metrics(metrics, config.aws_region, execution_id)
    main_logger.log_execution_end(success=not metrics["errors"], metrics=metrics)

    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "message": "RSS reader refresh completed",
                "execution_id": execution_id,
                "metrics": metrics,
            }
        ),
    }


def send_cloudwatch_metrics(
    metrics: dict[str, Any], aws_region: str, execution_id: str
) -> None:
    """Send refresh metrics to CloudWatch.

    Failures are logged and never raised.
    """
    metrics_logger = create_execution_logger("cloudwatch_metrics", execution_id)

    try:
        cloudwatch = boto3.client("cloudwatch", region_name=aws_region)
        dimensions = [{"Name": "ExecutionId", "Value": execution_id}]
        metric_data = [
            {
                "MetricName": "ItemsFound",
                "Value": metrics["items_found"],
                "Unit": "Count",
                "Dimensions": dimensions,
            },
            {
                "MetricName": "NewItems",
                "Value": metrics["new_items"],
                "Unit": "Count",
                "Dimensions": dimensions,
            },
            {
                "MetricName": "NotificationsSent",
                "Value": metrics["notifications_sent"],
                "Unit": "Count",
                "Dimensions": dimensions,
            },
            {
                "MetricName": "Errors",
                "Value": len(metrics["errors"]),
                "Unit": "Count",
                "Dimensions": dimensions,
            },
        ]
        cloudwatch.put_metric_data(Namespace=METRICS_NAMESPACE, MetricData=metric_data)
        metrics_logger.info(
            "Successfully sent metrics to CloudWatch",
            metrics_sent=len(metric_data),
            namespace=METRICS_NAMESPACE,
        )
    except Exception as e:
        metrics_logger.error(f"Failed to send CloudWatch metrics: {e}", error=str(e))
