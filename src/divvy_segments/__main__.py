from divvy_segments.pipeline import main

raise SystemExit(main())
