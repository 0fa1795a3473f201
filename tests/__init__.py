"""Test suite for scheduled search alerts.

Unit tests cover window resolution, timestamp normalization, delivery
retries, the Solr backend and the subscription store. To run the tests,
execute `pytest` from the project root.
"""
