from birdnest.main import main

main()
