"""View-model boundary between the engines and whatever renders them."""
