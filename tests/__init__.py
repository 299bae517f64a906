"""GraphTool Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - resilience/: classifier, enricher, retry executor and cancellation
  - audit/: buffered CSV audit log and in-memory sinks
  - graph/: Graph REST client and client-credential auth (httpx.MockTransport)
  - config/: settings merging and validation
  - actions/: business operations against a fake Graph client
  - security/: credential masking
  - cli/: entry point, exit codes and output modes

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/resilience/

    # With coverage
    pytest --cov=graphtool --cov-report=term-missing
"""
