"""Sales fulfillment service: validates, reserves, documents and records sales."""
