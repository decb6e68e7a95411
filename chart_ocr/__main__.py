from chart_ocr.cli import main

raise SystemExit(main())
