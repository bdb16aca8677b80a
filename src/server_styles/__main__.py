from server_styles.cli import main

raise SystemExit(main())
