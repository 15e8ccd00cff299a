"""Azure DevOps pipeline generation and variable group reconciliation."""
