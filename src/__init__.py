"""contentflow: article production workflow orchestrator."""
