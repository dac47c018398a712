from clustersmoke.cli import main

raise SystemExit(main())
