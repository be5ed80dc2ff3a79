"""API test harness: instrumented HTTP client, configuration and test data helpers."""
