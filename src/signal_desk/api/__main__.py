from signal_desk.api.runner import main

main()
