"""Spark event log parsing, reading through an HDFS client, file change tracking and API models."""

__version__ = "0.0.1"

__all__ = ["hdfs_reader", "metadata_store", "models", "spark_events"]