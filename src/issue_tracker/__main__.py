from issue_tracker.main import main

raise SystemExit(main())
