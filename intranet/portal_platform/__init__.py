"""Cross-domain platform services (transactional outbox, dispatcher worker)."""
