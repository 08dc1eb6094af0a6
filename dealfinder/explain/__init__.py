"""Optional network-backed explanation providers (see ``trust.explainer``)."""
