from whispo_mcp.cli.main import main

main()
