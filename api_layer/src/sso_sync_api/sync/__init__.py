"""Schema-adaptive user sync between the central registry and tenant stores."""
