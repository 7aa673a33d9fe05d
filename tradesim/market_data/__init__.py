"""Historical price acquisition — throttled, retrying provider client."""
