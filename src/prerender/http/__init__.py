"""Transport-neutral response envelope and MIME lookup."""
