"""Domain services: storage, submission, webhook handling and report rendering."""
