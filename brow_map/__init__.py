"""BrowMap: live camera overlay of parametric eyebrow molds."""
