from raindrop_mcp.main import main

main()
