from spread_tracker.main import main

main()
