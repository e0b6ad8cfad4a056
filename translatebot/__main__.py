from translatebot.main import main

main()
