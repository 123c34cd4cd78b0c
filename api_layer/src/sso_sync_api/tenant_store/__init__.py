"""Remote tenant store access (PostgREST row API plus identity admin API)."""
