"""Per-entity reconcilers that publish an app to TestFlight or the App Store."""
