from homebridge_mcp.main import main

main()
