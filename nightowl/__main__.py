from nightowl.main import main

main()
