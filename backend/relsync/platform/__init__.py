"""Platform integrations: sources, embedders, destinations, sync engine, work queue."""
