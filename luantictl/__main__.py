from luantictl.scripts.server import main


if __name__ == "__main__":
    main()
