from bootcore.cli.main import main

main()
