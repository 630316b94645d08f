"""signal-desk: trading signals posted to Discord forum threads, with live charts."""
